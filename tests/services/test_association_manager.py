"""
Tests for AssociationManager and PlanAssociationService.

Covers:
- Symmetry of the client↔plan link after every operation
- Level compatibility and plan state checks
- Unlink blocked by an active contract unless forced
"""

from uuid import uuid4

import pytest

from gym_kernel.exceptions import (
    ActiveContractExistsError,
    AlreadyAssociatedError,
    ClientNotFoundError,
    IncompatibleLevelError,
    InvalidIdentifierError,
    InvalidStateError,
    NotAssociatedError,
)
from gym_kernel.models import ClientPlanAssociation, Contract, ContractStatus, ProgressEntry


def _assert_symmetric(kernel, client_id, plan_id, linked: bool):
    client_side = plan_id in kernel.clients.get_client(client_id).data["client"].plan_ids
    plan_side = client_id in kernel.plans.get_plan(plan_id).data["plan"].client_ids
    assert client_side is linked
    assert plan_side is linked


class TestAssociate:
    def test_links_both_sides(self, kernel, make_client, make_plan):
        client_id, plan_id = make_client(), make_plan()
        kernel.associations.associate(client_id, plan_id)
        _assert_symmetric(kernel, client_id, plan_id, linked=True)

    def test_duplicate_link_rejected(self, kernel, make_client, make_plan):
        client_id, plan_id = make_client(), make_plan()
        kernel.associations.associate(client_id, plan_id)
        with pytest.raises(AlreadyAssociatedError):
            kernel.associations.associate(client_id, plan_id)

    def test_incompatible_level_rejected(self, kernel, make_client, make_plan, store):
        client_id = make_client(level="advanced")
        plan_id = make_plan(level="beginner")
        with pytest.raises(IncompatibleLevelError) as exc_info:
            kernel.associations.associate(client_id, plan_id)
        assert exc_info.value.client_level == "advanced"
        assert store.count(ClientPlanAssociation) == 0

    def test_custom_predicate(self, kernel, make_client, make_plan):
        client_id = make_client(level="advanced")
        plan_id = make_plan(level="beginner")
        kernel.associations.associate(client_id, plan_id, compatibility_check=lambda c, p: True)
        _assert_symmetric(kernel, client_id, plan_id, linked=True)

    def test_inactive_plan_rejected(self, kernel, make_client, make_plan):
        client_id, plan_id = make_client(), make_plan()
        kernel.plans.change_plan_status(plan_id, "finished")
        with pytest.raises(InvalidStateError):
            kernel.associations.associate(client_id, plan_id)

    def test_missing_client(self, kernel, make_plan):
        with pytest.raises(ClientNotFoundError):
            kernel.associations.associate(uuid4(), make_plan())


class TestDisassociate:
    def test_unlinks_both_sides(self, kernel, make_client, make_plan):
        client_id, plan_id = make_client(), make_plan()
        kernel.associations.associate(client_id, plan_id)
        kernel.associations.disassociate(client_id, plan_id)
        _assert_symmetric(kernel, client_id, plan_id, linked=False)

    def test_not_linked(self, kernel, make_client, make_plan):
        with pytest.raises(NotAssociatedError):
            kernel.associations.disassociate(make_client(), make_plan())

    def test_blocked_by_active_contract(self, kernel, make_client, make_plan, make_contract):
        client_id, plan_id = make_client(), make_plan()
        contract_id = make_contract(client_id, plan_id)
        with pytest.raises(ActiveContractExistsError) as exc_info:
            kernel.associations.disassociate(client_id, plan_id)
        assert exc_info.value.contract_id == str(contract_id)
        _assert_symmetric(kernel, client_id, plan_id, linked=True)

    def test_cascade_cancels_contract_in_same_unit(
        self, kernel, make_client, make_plan, make_contract, make_progress, store
    ):
        client_id, plan_id = make_client(), make_plan()
        contract_id = make_contract(client_id, plan_id)
        make_progress(client_id, contract_id)

        kernel.associations.disassociate(client_id, plan_id, cascade_contracts=True, reason="left the plan")

        contract = store.get(Contract, contract_id)
        assert contract.status == ContractStatus.CANCELED.value
        assert contract.cancellation_reason == "left the plan"
        assert store.count(ProgressEntry, contract_id=contract_id) == 0
        _assert_symmetric(kernel, client_id, plan_id, linked=False)


class TestPlanAssociationService:
    def test_associate_plan_result(self, kernel, make_client, make_plan):
        client_id, plan_id = make_client(), make_plan()
        result = kernel.plan_associations.associate_plan(str(client_id), str(plan_id))
        assert result.success
        assert result.data == {"client_id": client_id, "plan_id": plan_id}

    def test_failures_are_results_not_exceptions(self, kernel, make_client, make_plan):
        client_id, plan_id = make_client(level="advanced"), make_plan(level="beginner")
        result = kernel.plan_associations.associate_plan(client_id, plan_id)
        assert not result.success
        assert result.error_code == "INCOMPATIBLE_LEVEL"
        assert isinstance(result.error, IncompatibleLevelError)

    def test_malformed_id_raises(self, kernel, make_plan):
        with pytest.raises(InvalidIdentifierError):
            kernel.plan_associations.associate_plan("nope", make_plan())

    def test_forced_disassociation_reports_canceled_contract(
        self, kernel, make_client, make_plan, make_contract
    ):
        client_id, plan_id = make_client(), make_plan()
        contract_id = make_contract(client_id, plan_id)

        blocked = kernel.plan_associations.disassociate_plan(client_id, plan_id)
        assert blocked.error_code == "ACTIVE_CONTRACT_EXISTS"

        result = kernel.plan_associations.disassociate_plan(client_id, plan_id, force=True)
        assert result.success
        assert result.data["canceled_contracts"] == [str(contract_id)]

    def test_list_client_plans(self, kernel, make_client, make_plan, make_contract, clock):
        client_id = make_client()
        with_contract, without_contract = make_plan(name="A"), make_plan(name="B")
        make_contract(client_id, with_contract)
        clock.advance(60)
        kernel.plan_associations.associate_plan(client_id, without_contract)

        plans = kernel.plan_associations.list_client_plans(client_id)
        assert [p.plan.id for p in plans] == [with_contract, without_contract]
        assert [p.has_active_contract for p in plans] == [True, False]

    def test_list_available_plans(self, kernel, make_client, make_plan):
        client_id = make_client(level="intermediate")
        too_easy = make_plan(level="beginner")
        fits = make_plan(level="advanced")
        linked = make_plan(level="intermediate")
        kernel.plan_associations.associate_plan(client_id, linked)

        available = {p.id for p in kernel.plan_associations.list_available_plans(client_id)}
        assert available == {fits}
        assert too_easy not in available

    def test_list_plan_clients(self, kernel, make_client, make_plan):
        plan_id = make_plan()
        a, b = make_client(), make_client()
        kernel.plan_associations.associate_plan(a, plan_id)
        kernel.plan_associations.associate_plan(b, plan_id)
        assert {c.id for c in kernel.plan_associations.list_plan_clients(plan_id)} == {a, b}
