# backend/tests/test_deposit_settlement.py
from __future__ import annotations

from datetime import date

import pytest

from leaseflow.domain.states import DepositStatus
from leaseflow.models import SecurityDeposit
from leaseflow.schemas import DepositDeduction, DepositRefundIn, MoveOutDetails
from leaseflow.services import notifications as events
from leaseflow.services.lease_workflow import compute_settlement

from flows import lease_for_new_tenant


@pytest.mark.parametrize(
    "amount,deductions,expected",
    [
        (1500.0, [], (0.0, 1500.0, 0.0)),
        (1500.0, [200.0, 75.5], (275.5, 1224.5, 0.0)),
        (1000.0, [1000.0], (1000.0, 0.0, 0.0)),
        (800.0, [600.0, 450.25], (1050.25, 0.0, 250.25)),
    ],
)
def test_compute_settlement(amount, deductions, expected):
    items = [DepositDeduction(description=f"item {i}", amount=a) for i, a in enumerate(deductions)]
    assert compute_settlement(amount, items) == expected


def _moved_out(apps, leases, make_property, make_prospect, *, deposit: float = 1500.0) -> int:
    lease_id = lease_for_new_tenant(apps, make_prospect(), make_property(), deposit=deposit)
    res = leases.complete_move_out(lease_id, MoveOutDetails(actual_move_out_date=date.today(), keys_returned=True))
    assert res.ok, res.message
    return lease_id


def _deposit(db, lease_id: int) -> SecurityDeposit:
    return db.query(SecurityDeposit).filter(SecurityDeposit.lease_id == lease_id).one()


def test_settlement_requires_ended_lease(db_session, apps, leases, make_property, make_prospect):
    lease_id = lease_for_new_tenant(apps, make_prospect(), make_property())

    res = leases.initiate_deposit_settlement(lease_id, [])
    assert not res.ok
    assert res.message == (
        "Deposit can only be settled for leases in: Expired, NoticeGiven, Terminated. Current status: Active"
    )
    assert _deposit(db_session, lease_id).status == DepositStatus.HELD


def test_partial_deduction_goes_to_pending_return(db_session, apps, leases, make_property, make_prospect):
    lease_id = _moved_out(apps, leases, make_property, make_prospect)

    res = leases.initiate_deposit_settlement(
        lease_id,
        [
            DepositDeduction(description="Carpet cleaning", amount=150.0, category="cleaning"),
            DepositDeduction(description="Broken blind", amount=50.0),
        ],
    )
    assert res.ok, res.message
    settlement = res.data
    assert settlement.original_amount == 1500.0
    assert settlement.total_deductions == 200.0
    assert settlement.refund_amount == 1300.0
    assert settlement.amount_owed == 0.0
    assert settlement.settlement_date == date.today()
    assert res.metadata["deposit_status"] == "PendingReturn"

    deposit = _deposit(db_session, lease_id)
    assert deposit.status == DepositStatus.PENDING_RETURN
    assert deposit.deductions_amount == 200.0
    assert deposit.refund_amount == 1300.0
    assert deposit.deductions_reason == "Carpet cleaning: 150.00; Broken blind: 50.00"

    again = leases.initiate_deposit_settlement(lease_id, [])
    assert not again.ok
    assert again.message == "Security deposit has already been settled"


def test_deductions_over_deposit_forfeit_it(db_session, apps, leases, make_property, make_prospect):
    lease_id = _moved_out(apps, leases, make_property, make_prospect, deposit=500.0)

    res = leases.initiate_deposit_settlement(lease_id, [DepositDeduction(description="Water damage", amount=725.0)])
    assert res.ok, res.message
    assert res.data.refund_amount == 0.0
    assert res.data.amount_owed == 225.0
    assert _deposit(db_session, lease_id).status == DepositStatus.FORFEITED
    assert res.data.as_dict()["deductions"] == [{"description": "Water damage", "amount": 725.0, "category": None}]


def test_record_refund(db_session, apps, leases, notifier, make_property, make_prospect):
    lease_id = _moved_out(apps, leases, make_property, make_prospect)
    leases.initiate_deposit_settlement(lease_id, [DepositDeduction(description="Cleaning", amount=100.0)])

    blank = leases.record_deposit_refund(lease_id, DepositRefundIn(refund_amount=1400.0, refund_method=" "))
    assert blank.message == "Refund method is required"

    res = leases.record_deposit_refund(
        lease_id, DepositRefundIn(refund_amount=1400.0, refund_method="Check", refund_reference="CHK-1001")
    )
    assert res.ok, res.message
    deposit = _deposit(db_session, lease_id)
    assert deposit.status == DepositStatus.REFUNDED
    assert deposit.refund_amount == 1400.0
    assert deposit.refund_method == "Check"
    assert deposit.refund_processed_date == date.today()
    assert "(ref CHK-1001)" in deposit.notes
    assert events.DEPOSIT_REFUNDED in notifier.events()

    again = leases.record_deposit_refund(lease_id, DepositRefundIn(refund_amount=1.0, refund_method="Check"))
    assert not again.ok
    assert again.message == "Deposit has already been returned"


def test_refund_for_unknown_lease_is_not_found(leases):
    res = leases.record_deposit_refund(123456, DepositRefundIn(refund_amount=1.0, refund_method="Check"))
    assert not res.ok
    assert res.message == "Security deposit not found"
