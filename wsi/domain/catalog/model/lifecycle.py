"""URL lifecycle graph.

    PENDING -> VERIFYING -> VERIFIED -> SUBMITTING -> SUBMITTED -> INSPECTING
    VERIFYING -> FAILED_VERIFICATION
    VERIFIED -> PENDING                      (quota deferral)
    SUBMITTING -> INSPECTING                 (transport failure)
    INSPECTING -> COMPLETED | RETRYING | FAILED_PERMANENT
    RETRYING -> PENDING                      (delay elapsed)

Transient states may be re-entered from themselves: a run that finds a URL
orphaned in VERIFYING, SUBMITTING or INSPECTING resumes it as if fresh.
"""

from wsi.domain.catalog.model.value import UrlItemStatus
from wsi.domain.shared.error import IllegalTransitionError

S = UrlItemStatus

TRANSITIONS: dict[UrlItemStatus, frozenset[UrlItemStatus]] = {
    S.PENDING: frozenset({S.VERIFYING}),
    S.VERIFYING: frozenset({S.VERIFYING, S.VERIFIED, S.FAILED_VERIFICATION}),
    S.VERIFIED: frozenset({S.SUBMITTING, S.PENDING}),
    S.SUBMITTING: frozenset({S.SUBMITTING, S.SUBMITTED, S.INSPECTING, S.PENDING}),
    S.SUBMITTED: frozenset({S.INSPECTING}),
    S.INSPECTING: frozenset({S.INSPECTING, S.COMPLETED, S.RETRYING, S.FAILED_PERMANENT}),
    S.RETRYING: frozenset({S.PENDING}),
    S.COMPLETED: frozenset(),
    S.FAILED_PERMANENT: frozenset(),
    S.FAILED_VERIFICATION: frozenset(),
}

TERMINAL: frozenset[UrlItemStatus] = frozenset(
    {S.COMPLETED, S.FAILED_PERMANENT, S.FAILED_VERIFICATION}
)

# Rest states may persist across a crash; all others are transient.
STABLE: frozenset[UrlItemStatus] = TERMINAL | {S.PENDING}

TRANSIENT: frozenset[UrlItemStatus] = frozenset(TRANSITIONS) - STABLE


def can_transition(source: UrlItemStatus, target: UrlItemStatus) -> bool:
    return target in TRANSITIONS[source]


def require_transition(source: UrlItemStatus, target: UrlItemStatus) -> None:
    """Raise IllegalTransitionError unless source -> target is an edge of the graph."""
    if not can_transition(source, target):
        raise IllegalTransitionError(source, target)


def is_terminal(status: UrlItemStatus) -> bool:
    return status in TERMINAL
