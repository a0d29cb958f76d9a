"""
Status graphs for leads, tasks and deals.

Every status change in the CRM is checked here, against an explicit
adjacency table per entity type. Services never compare statuses ad hoc;
they call check() and apply the change only if it returns.

Graphs:
- Lead: NEW -> CONTACTED -> QUALIFIED -> NEGOTIATING -> {CONVERTED, LOST}.
  Privileged roles may also jump from NEW to any status (manual override).
- Task: PENDING/IN_PROGRESS -> {IN_PROGRESS, COMPLETED, CANCELLED}.
- Deal: strictly forward through the progression, or CANCELLED from any
  open status.
Terminal statuses have no outgoing edges.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Mapping, TypeVar
from uuid import UUID

from core.errors import InvalidTransition, Unauthorized
from core.models import DealStatus, LeadStatus, Member, TaskStatus

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class TransitionGraph(Generic[S]):
    """
    Directed status graph for one entity type.

    `edges` are open to any actor. `override_edges` exist only for members
    whose role is privileged; anyone else taking one gets Unauthorized.
    """

    entity_type: str
    edges: Mapping[S, frozenset[S]]
    override_edges: Mapping[S, frozenset[S]] = field(default_factory=dict)

    def allowed(self, current: S, actor: Member | None = None) -> frozenset[S]:
        """Statuses reachable from `current` for this actor."""
        targets = self.edges.get(current, frozenset())
        if actor is not None and actor.is_privileged:
            targets = targets | self.override_edges.get(current, frozenset())
        return targets

    def is_terminal(self, status: S) -> bool:
        return not self.edges.get(status) and not self.override_edges.get(status)

    def check(self, entity_id: UUID, current: S, target: S, actor: Member | None) -> None:
        """
        Validate one status change.

        Args:
            entity_id: Entity being changed (for error context)
            current: Status as read from the store
            target: Requested status
            actor: Member requesting the change; None for system actors

        Raises:
            InvalidTransition: Edge is not in the graph
            Unauthorized: Edge is an override and the actor is not privileged
        """
        if target in self.allowed(current, actor):
            return

        if target in self.override_edges.get(current, frozenset()):
            role = actor.role.value if actor is not None else "system"
            raise Unauthorized(
                f"Role {role} cannot move {self.entity_type} {entity_id} "
                f"from {current.value} to {target.value}"
            )

        raise InvalidTransition(self.entity_type, entity_id, current.value, target.value)


def _forward_edges(progression: list[DealStatus], cancelled: DealStatus) -> dict:
    edges = {}
    for index, status in enumerate(progression[:-1]):
        edges[status] = frozenset(progression[index + 1:]) | {cancelled}
    return edges


LEAD_GRAPH: TransitionGraph[LeadStatus] = TransitionGraph(
    entity_type="lead",
    edges={
        LeadStatus.NEW: frozenset({LeadStatus.CONTACTED}),
        LeadStatus.CONTACTED: frozenset({LeadStatus.QUALIFIED}),
        LeadStatus.QUALIFIED: frozenset({LeadStatus.NEGOTIATING}),
        LeadStatus.NEGOTIATING: frozenset({LeadStatus.CONVERTED, LeadStatus.LOST}),
    },
    override_edges={
        LeadStatus.NEW: frozenset({
            LeadStatus.QUALIFIED, LeadStatus.NEGOTIATING,
            LeadStatus.CONVERTED, LeadStatus.LOST,
        }),
    },
)

TASK_GRAPH: TransitionGraph[TaskStatus] = TransitionGraph(
    entity_type="task",
    edges={
        TaskStatus.PENDING: frozenset({
            TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED,
        }),
        TaskStatus.IN_PROGRESS: frozenset({
            TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED,
        }),
    },
)

DEAL_GRAPH: TransitionGraph[DealStatus] = TransitionGraph(
    entity_type="deal",
    edges=_forward_edges(
        [
            DealStatus.NEGOTIATION,
            DealStatus.CONTRACT_SIGNED,
            DealStatus.DEPOSIT_RECEIVED,
            DealStatus.PAYMENT_IN_PROGRESS,
            DealStatus.COMPLETED,
        ],
        DealStatus.CANCELLED,
    ),
)
