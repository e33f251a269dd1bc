# backend/leaseflow/domain/states.py
"""
Status enums and transition tables for every workflow-managed entity.

Tables are pure lookups. Anything not declared in a table (terminal states,
unknown strings, None) has no valid next state.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Type


class ApplicationStatus(str, Enum):
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "UnderReview"
    SCREENING = "Screening"
    APPROVED = "Approved"
    DENIED = "Denied"
    LEASE_OFFERED = "LeaseOffered"
    LEASE_ACCEPTED = "LeaseAccepted"
    LEASE_DECLINED = "LeaseDeclined"
    EXPIRED = "Expired"
    WITHDRAWN = "Withdrawn"


class ProspectStatus(str, Enum):
    LEAD = "Lead"
    APPLIED = "Applied"
    SCREENING = "Screening"
    APPROVED = "Approved"
    DENIED = "Denied"
    LEASE_OFFERED = "LeaseOffered"
    LEASE_DECLINED = "LeaseDeclined"
    WITHDRAWN = "Withdrawn"
    CONVERTED_TO_TENANT = "ConvertedToTenant"


class PropertyStatus(str, Enum):
    AVAILABLE = "Available"
    APPLICATION_PENDING = "ApplicationPending"
    LEASE_PENDING = "LeasePending"
    OCCUPIED = "Occupied"


class ScreeningResult(str, Enum):
    PENDING = "Pending"
    PASSED = "Passed"
    FAILED = "Failed"
    CONDITIONAL_PASS = "ConditionalPass"


class LeaseOfferStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    EXPIRED = "Expired"


class LeaseStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    RENEWED = "Renewed"
    MONTH_TO_MONTH = "MonthToMonth"
    NOTICE_GIVEN = "NoticeGiven"
    EXPIRED = "Expired"
    TERMINATED = "Terminated"


class DepositStatus(str, Enum):
    HELD = "Held"
    PENDING_RETURN = "PendingReturn"
    FORFEITED = "Forfeited"
    REFUNDED = "Refunded"


# Applications that still hold a claim on their property.
OPEN_APPLICATION_STATUSES = frozenset(
    {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.SCREENING,
        ApplicationStatus.APPROVED,
        ApplicationStatus.LEASE_OFFERED,
    }
)

# Pre-decision applications swept by the stale-application job.
UNDECIDED_APPLICATION_STATUSES = frozenset(
    {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.SCREENING,
    }
)

# Deny refuses only these; LeaseDeclined and Expired applications can still be denied.
DENY_BLOCKED_STATUSES = frozenset(
    {
        ApplicationStatus.DENIED,
        ApplicationStatus.LEASE_ACCEPTED,
        ApplicationStatus.WITHDRAWN,
    }
)

APPROVABLE_SCREENING_RESULTS = frozenset({ScreeningResult.PASSED, ScreeningResult.CONDITIONAL_PASS})

# Leases that keep a tenant "current".
OCCUPYING_LEASE_STATUSES = frozenset({LeaseStatus.ACTIVE, LeaseStatus.MONTH_TO_MONTH})


def status_value(v: Any) -> Optional[str]:
    """Store-boundary string for an enum member (or passthrough for str/None)."""
    if v is None:
        return None
    if isinstance(v, Enum):
        return str(v.value)
    return str(v)


@dataclass(frozen=True)
class TransitionTable:
    entity_type: str
    enum_cls: Type[Enum]
    edges: Mapping[Enum, frozenset] = field(default_factory=dict)

    def _coerce(self, state: Any) -> Optional[Enum]:
        if isinstance(state, self.enum_cls):
            return state
        try:
            return self.enum_cls(state)
        except (ValueError, TypeError):
            return None

    def valid_next_states(self, current: Any) -> frozenset:
        s = self._coerce(current)
        if s is None:
            return frozenset()
        return self.edges.get(s, frozenset())

    def is_valid_transition(self, from_state: Any, to_state: Any) -> bool:
        target = self._coerce(to_state)
        return target is not None and target in self.valid_next_states(from_state)

    def is_terminal(self, state: Any) -> bool:
        return not self.valid_next_states(state)

    def invalid_transition_reason(self, from_state: Any, to_state: Any) -> str:
        valid = sorted(status_value(s) for s in self.valid_next_states(from_state))
        alternatives = ", ".join(valid) if valid else "none (terminal state)"
        return (
            f"Cannot transition {self.entity_type} from {status_value(from_state)} "
            f"to {status_value(to_state)}. Valid next states: {alternatives}"
        )


def _edges(spec: Mapping[Enum, Iterable[Enum]]) -> dict[Enum, frozenset]:
    return {k: frozenset(v) for k, v in spec.items()}


A = ApplicationStatus
APPLICATION_TRANSITIONS = TransitionTable(
    entity_type="RentalApplication",
    enum_cls=ApplicationStatus,
    edges=_edges(
        {
            A.SUBMITTED: {A.UNDER_REVIEW, A.DENIED, A.WITHDRAWN, A.EXPIRED},
            A.UNDER_REVIEW: {A.SCREENING, A.DENIED, A.WITHDRAWN, A.EXPIRED},
            A.SCREENING: {A.APPROVED, A.DENIED, A.WITHDRAWN, A.EXPIRED},
            A.APPROVED: {A.LEASE_OFFERED, A.DENIED, A.WITHDRAWN},
            A.LEASE_OFFERED: {A.LEASE_ACCEPTED, A.LEASE_DECLINED, A.EXPIRED, A.WITHDRAWN, A.DENIED},
        }
    ),
)

L = LeaseStatus
LEASE_TRANSITIONS = TransitionTable(
    entity_type="Lease",
    enum_cls=LeaseStatus,
    edges=_edges(
        {
            L.PENDING: {L.ACTIVE, L.TERMINATED},
            L.ACTIVE: {L.RENEWED, L.MONTH_TO_MONTH, L.NOTICE_GIVEN, L.EXPIRED, L.TERMINATED},
            L.RENEWED: {L.ACTIVE, L.NOTICE_GIVEN, L.TERMINATED},
            L.MONTH_TO_MONTH: {L.NOTICE_GIVEN, L.RENEWED, L.TERMINATED},
            L.NOTICE_GIVEN: {L.EXPIRED, L.TERMINATED},
        }
    ),
)

O = LeaseOfferStatus
LEASE_OFFER_TRANSITIONS = TransitionTable(
    entity_type="LeaseOffer",
    enum_cls=LeaseOfferStatus,
    edges=_edges({O.PENDING: {O.ACCEPTED, O.DECLINED, O.EXPIRED}}),
)

D = DepositStatus
DEPOSIT_TRANSITIONS = TransitionTable(
    entity_type="SecurityDeposit",
    enum_cls=DepositStatus,
    edges=_edges(
        {
            D.HELD: {D.PENDING_RETURN, D.FORFEITED, D.REFUNDED},
            D.PENDING_RETURN: {D.REFUNDED},
            D.FORFEITED: {D.REFUNDED},
        }
    ),
)

P = ProspectStatus
PROSPECT_TRANSITIONS = TransitionTable(
    entity_type="ProspectiveTenant",
    enum_cls=ProspectStatus,
    edges=_edges(
        {
            # a prospect may re-apply after a closed application
            P.LEAD: {P.APPLIED},
            P.APPLIED: {P.SCREENING, P.DENIED, P.WITHDRAWN},
            P.SCREENING: {P.APPROVED, P.DENIED, P.WITHDRAWN},
            P.APPROVED: {P.LEASE_OFFERED, P.DENIED, P.WITHDRAWN},
            P.LEASE_OFFERED: {P.CONVERTED_TO_TENANT, P.LEASE_DECLINED, P.WITHDRAWN, P.DENIED},
            P.DENIED: {P.APPLIED},
            P.WITHDRAWN: {P.APPLIED},
            P.LEASE_DECLINED: {P.APPLIED, P.DENIED},
        }
    ),
)

PR = PropertyStatus
PROPERTY_TRANSITIONS = TransitionTable(
    entity_type="Property",
    enum_cls=PropertyStatus,
    edges=_edges(
        {
            PR.AVAILABLE: {PR.APPLICATION_PENDING, PR.LEASE_PENDING, PR.OCCUPIED},
            PR.APPLICATION_PENDING: {PR.AVAILABLE, PR.LEASE_PENDING, PR.OCCUPIED},
            PR.LEASE_PENDING: {PR.AVAILABLE, PR.OCCUPIED},
            PR.OCCUPIED: {PR.AVAILABLE},
        }
    ),
)

TABLES: dict[str, TransitionTable] = {
    t.entity_type: t
    for t in (
        APPLICATION_TRANSITIONS,
        LEASE_TRANSITIONS,
        LEASE_OFFER_TRANSITIONS,
        DEPOSIT_TRANSITIONS,
        PROSPECT_TRANSITIONS,
        PROPERTY_TRANSITIONS,
    )
}


def table_for(entity_type: str) -> Optional[TransitionTable]:
    return TABLES.get(entity_type)
