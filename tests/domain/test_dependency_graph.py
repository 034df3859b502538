"""Tests for the static dependency table and its post-order walk."""

from uuid import uuid4

import pytest

from gym_kernel.domain.dependency_graph import (
    CascadeAction,
    EntityKind,
    edges_from,
    walk,
)


def _finder(children: dict):
    """Build a finder from {(kind, via, parent_id): [ids]}."""

    def find(kind, via, parent_id):
        return children.get((kind, via, parent_id), [])

    return find


class TestDependencyTable:
    def test_contract_depends_only_on_progress_entries(self):
        edges = edges_from(EntityKind.CONTRACT)
        assert [(e.child, e.action) for e in edges] == [
            (EntityKind.PROGRESS_ENTRY, CascadeAction.DELETE)
        ]

    def test_leaves_have_no_dependents(self):
        assert edges_from(EntityKind.PROGRESS_ENTRY) == ()
        assert edges_from(EntityKind.ASSOCIATION) == ()


class TestWalk:
    def test_contract_root_is_canceled_after_its_entries(self):
        contract, e1, e2 = uuid4(), uuid4(), uuid4()
        steps = walk(
            EntityKind.CONTRACT,
            contract,
            _finder({(EntityKind.PROGRESS_ENTRY, "contract_id", contract): [e1, e2]}),
        )
        assert [(s.kind, s.entity_id, s.action) for s in steps] == [
            (EntityKind.PROGRESS_ENTRY, e1, CascadeAction.DELETE),
            (EntityKind.PROGRESS_ENTRY, e2, CascadeAction.DELETE),
            (EntityKind.CONTRACT, contract, CascadeAction.CANCEL),
        ]

    def test_client_root_orders_entries_contracts_links_then_client(self):
        client, contract, entry, link = uuid4(), uuid4(), uuid4(), uuid4()
        finder = _finder(
            {
                (EntityKind.PROGRESS_ENTRY, "client_id", client): [entry],
                (EntityKind.CONTRACT, "client_id", client): [contract],
                (EntityKind.PROGRESS_ENTRY, "contract_id", contract): [entry],
                (EntityKind.ASSOCIATION, "client_id", client): [link],
            }
        )
        steps = walk(EntityKind.CLIENT, client, finder)
        assert [s.kind for s in steps] == [
            EntityKind.PROGRESS_ENTRY,
            EntityKind.CONTRACT,
            EntityKind.ASSOCIATION,
            EntityKind.CLIENT,
        ]

    def test_row_reachable_twice_appears_once(self):
        client, contract, entry = uuid4(), uuid4(), uuid4()
        finder = _finder(
            {
                (EntityKind.PROGRESS_ENTRY, "client_id", client): [entry],
                (EntityKind.CONTRACT, "client_id", client): [contract],
                (EntityKind.PROGRESS_ENTRY, "contract_id", contract): [entry],
            }
        )
        steps = walk(EntityKind.CLIENT, client, finder)
        assert [s.entity_id for s in steps].count(entry) == 1

    def test_root_without_dependents_yields_only_root(self):
        plan = uuid4()
        steps = walk(EntityKind.PLAN, plan, _finder({}))
        assert len(steps) == 1
        assert steps[0].action is CascadeAction.DELETE

    def test_step_names_are_unique_and_readable(self):
        contract = uuid4()
        step = walk(EntityKind.CONTRACT, contract, _finder({}))[0]
        assert step.name == f"cancel_contract:{contract}"

    def test_non_root_kind_rejected(self):
        with pytest.raises(ValueError):
            walk(EntityKind.PROGRESS_ENTRY, uuid4(), _finder({}))
