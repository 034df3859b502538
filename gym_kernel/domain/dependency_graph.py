"""
Static dependency table and post-order walk used by cascades.

Each edge says "rows of ``child`` reference ``parent`` through the
``via`` column, and removing the parent requires ``action`` on them".
``walk()`` expands a root into the ordered list of steps that removes
dependents before the rows they reference.  It is pure: children are
looked up through a caller-supplied finder, so the same walk serves any
session.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class EntityKind(str, Enum):
    CLIENT = "client"
    PLAN = "plan"
    CONTRACT = "contract"
    PROGRESS_ENTRY = "progress_entry"
    ASSOCIATION = "association"


class CascadeAction(str, Enum):
    DELETE = "delete"
    CANCEL = "cancel"
    UNLINK = "unlink"


@dataclass(frozen=True)
class DependencyEdge:
    parent: EntityKind
    child: EntityKind
    via: str
    action: CascadeAction


@dataclass(frozen=True)
class CascadeStep:
    kind: EntityKind
    entity_id: UUID
    action: CascadeAction

    @property
    def name(self) -> str:
        return f"{self.action.value}_{self.kind.value}:{self.entity_id}"


# Declaration order is execution order among siblings.
DEPENDENCIES: tuple[DependencyEdge, ...] = (
    DependencyEdge(EntityKind.CONTRACT, EntityKind.PROGRESS_ENTRY, "contract_id", CascadeAction.DELETE),
    DependencyEdge(EntityKind.CLIENT, EntityKind.PROGRESS_ENTRY, "client_id", CascadeAction.DELETE),
    DependencyEdge(EntityKind.CLIENT, EntityKind.CONTRACT, "client_id", CascadeAction.DELETE),
    DependencyEdge(EntityKind.CLIENT, EntityKind.ASSOCIATION, "client_id", CascadeAction.UNLINK),
    DependencyEdge(EntityKind.PLAN, EntityKind.CONTRACT, "plan_id", CascadeAction.DELETE),
    DependencyEdge(EntityKind.PLAN, EntityKind.ASSOCIATION, "plan_id", CascadeAction.UNLINK),
)

ROOT_ACTIONS: dict[EntityKind, CascadeAction] = {
    EntityKind.CONTRACT: CascadeAction.CANCEL,
    EntityKind.CLIENT: CascadeAction.DELETE,
    EntityKind.PLAN: CascadeAction.DELETE,
}

ChildFinder = Callable[[EntityKind, str, UUID], list[UUID]]


def edges_from(kind: EntityKind) -> tuple[DependencyEdge, ...]:
    return tuple(edge for edge in DEPENDENCIES if edge.parent is kind)


def walk(root_kind: EntityKind, root_id: UUID, find_children: ChildFinder) -> list[CascadeStep]:
    """
    Post-order expansion of a cascade root.

    Every dependent appears before anything it references, and each row
    appears once even when it is reachable along two edges (a progress
    entry hangs off both its client and its contract).  The root step is
    always last.

    Args:
        root_kind: Kind of the root entity.
        root_id: Id of the root entity.
        find_children: ``(child_kind, via_column, parent_id) -> [child ids]``.
    """
    if root_kind not in ROOT_ACTIONS:
        raise ValueError(f"{root_kind.value} cannot be a cascade root")

    steps: list[CascadeStep] = []
    seen: set[tuple[EntityKind, UUID]] = {(root_kind, root_id)}

    def visit(kind: EntityKind, entity_id: UUID) -> None:
        for edge in edges_from(kind):
            for child_id in find_children(edge.child, edge.via, entity_id):
                key = (edge.child, child_id)
                if key in seen:
                    continue
                seen.add(key)
                visit(edge.child, child_id)
                steps.append(CascadeStep(edge.child, child_id, edge.action))

    visit(root_kind, root_id)
    steps.append(CascadeStep(root_kind, root_id, ROOT_ACTIONS[root_kind]))
    return steps
