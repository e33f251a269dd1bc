# backend/tests/test_state_tables.py
from __future__ import annotations

import pytest

from leaseflow.domain.states import (
    APPLICATION_TRANSITIONS,
    DEPOSIT_TRANSITIONS,
    LEASE_OFFER_TRANSITIONS,
    LEASE_TRANSITIONS,
    PROPERTY_TRANSITIONS,
    ApplicationStatus,
    DepositStatus,
    LeaseOfferStatus,
    LeaseStatus,
    PropertyStatus,
    status_value,
    table_for,
)


@pytest.mark.parametrize(
    "terminal",
    [
        ApplicationStatus.DENIED,
        ApplicationStatus.LEASE_ACCEPTED,
        ApplicationStatus.LEASE_DECLINED,
        ApplicationStatus.EXPIRED,
        ApplicationStatus.WITHDRAWN,
    ],
)
def test_application_terminal_states_have_no_exits(terminal):
    assert APPLICATION_TRANSITIONS.is_terminal(terminal)
    assert APPLICATION_TRANSITIONS.valid_next_states(terminal) == frozenset()
    assert not APPLICATION_TRANSITIONS.is_valid_transition(terminal, ApplicationStatus.APPROVED)


def test_application_happy_path_edges():
    path = [
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.SCREENING,
        ApplicationStatus.APPROVED,
        ApplicationStatus.LEASE_OFFERED,
        ApplicationStatus.LEASE_ACCEPTED,
    ]
    for a, b in zip(path, path[1:]):
        assert APPLICATION_TRANSITIONS.is_valid_transition(a, b), (a, b)


def test_application_cannot_skip_screening():
    assert not APPLICATION_TRANSITIONS.is_valid_transition(ApplicationStatus.SUBMITTED, ApplicationStatus.APPROVED)
    assert not APPLICATION_TRANSITIONS.is_valid_transition(ApplicationStatus.UNDER_REVIEW, ApplicationStatus.APPROVED)


def test_tables_accept_raw_strings_and_reject_unknown():
    assert APPLICATION_TRANSITIONS.is_valid_transition("Submitted", "UnderReview")
    assert APPLICATION_TRANSITIONS.valid_next_states("NotAState") == frozenset()
    assert APPLICATION_TRANSITIONS.valid_next_states(None) == frozenset()
    assert not APPLICATION_TRANSITIONS.is_valid_transition("Submitted", "Bogus")


def test_lease_table():
    assert LEASE_TRANSITIONS.valid_next_states(LeaseStatus.PENDING) == {LeaseStatus.ACTIVE, LeaseStatus.TERMINATED}
    assert LEASE_TRANSITIONS.is_valid_transition(LeaseStatus.NOTICE_GIVEN, LeaseStatus.EXPIRED)
    assert LEASE_TRANSITIONS.is_terminal(LeaseStatus.EXPIRED)
    assert LEASE_TRANSITIONS.is_terminal(LeaseStatus.TERMINATED)
    assert not LEASE_TRANSITIONS.is_valid_transition(LeaseStatus.TERMINATED, LeaseStatus.ACTIVE)


def test_offer_and_deposit_tables():
    assert LEASE_OFFER_TRANSITIONS.valid_next_states(LeaseOfferStatus.PENDING) == {
        LeaseOfferStatus.ACCEPTED,
        LeaseOfferStatus.DECLINED,
        LeaseOfferStatus.EXPIRED,
    }
    assert LEASE_OFFER_TRANSITIONS.is_terminal(LeaseOfferStatus.ACCEPTED)

    assert DEPOSIT_TRANSITIONS.is_valid_transition(DepositStatus.HELD, DepositStatus.PENDING_RETURN)
    assert DEPOSIT_TRANSITIONS.is_valid_transition(DepositStatus.FORFEITED, DepositStatus.REFUNDED)
    assert DEPOSIT_TRANSITIONS.is_terminal(DepositStatus.REFUNDED)


def test_property_never_terminal():
    for s in PropertyStatus:
        assert not PROPERTY_TRANSITIONS.is_terminal(s)


def test_invalid_transition_reason_lists_alternatives():
    msg = APPLICATION_TRANSITIONS.invalid_transition_reason(ApplicationStatus.SUBMITTED, ApplicationStatus.APPROVED)
    assert msg.startswith("Cannot transition RentalApplication from Submitted to Approved.")
    assert "UnderReview" in msg
    assert "Withdrawn" in msg

    terminal = LEASE_TRANSITIONS.invalid_transition_reason(LeaseStatus.TERMINATED, LeaseStatus.ACTIVE)
    assert terminal.endswith("Valid next states: none (terminal state)")


def test_table_lookup_and_status_value():
    assert table_for("Lease") is LEASE_TRANSITIONS
    assert table_for("Nope") is None
    assert status_value(LeaseStatus.MONTH_TO_MONTH) == "MonthToMonth"
    assert status_value(None) is None
