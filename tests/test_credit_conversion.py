import pytest
from decimal import Decimal

from leave_ledger.core.exceptions import InsufficientBalance, InvalidTransition, Unauthorized, ValidationFailed
from leave_ledger.models.credit_conversion import ConversionStatus
from leave_ledger.models.leave_credit import CreditType, LeaveCreditLog, LedgerReason
from leave_ledger.models.notification import Notification
from leave_ledger.services.credit_conversion import CreditConversionService, equivalent_cash
from leave_ledger.services.leave_ledger import LeaveLedgerService


def _conversion_rows(db_session, employee_id):
    return db_session.query(LeaveCreditLog).filter(
        LeaveCreditLog.employee_id == employee_id,
        LeaveCreditLog.reason == LedgerReason.CONVERSION.value,
    ).all()


@pytest.mark.parametrize("salary,credits,expected", [
    ("22000", "2", "2000.00"),
    ("30000", "1.5", "2045.45"),
    ("25000", "0.5", "568.18"),
])
def test_equivalent_cash(salary, credits, expected):
    assert equivalent_cash(Decimal(salary), Decimal(credits)) == Decimal(expected)


def test_scenario_deduction_happens_only_at_admin_stage(
    db_session, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="5")
    service = CreditConversionService(db_session)
    ledger = LeaveLedgerService(db_session)

    conversion = service.request(employee.id, "VL", Decimal("2.0"), "Tuition")
    assert conversion.status == ConversionStatus.PENDING.value
    assert conversion.equivalent_cash == Decimal("2000.00")

    conversion = service.approve(conversion.id, hr_user, "ok")
    assert conversion.status == ConversionStatus.HR_APPROVED.value
    assert conversion.hr_approved_by == hr_user.id
    assert ledger.balances(employee.id)["vl_balance"] == Decimal("5")

    conversion = service.approve(conversion.id, dept_head)
    assert conversion.status == ConversionStatus.DEPT_HEAD_APPROVED.value
    assert ledger.balances(employee.id)["vl_balance"] == Decimal("5")
    assert _conversion_rows(db_session, employee.id) == []

    conversion = service.approve(conversion.id, primary_admin, "Release on payday")
    assert conversion.status == ConversionStatus.ADMIN_APPROVED.value
    assert conversion.admin_approved_by == primary_admin.id
    assert conversion.admin_approved_at is not None
    assert ledger.balances(employee.id)["vl_balance"] == Decimal("3")

    rows = _conversion_rows(db_session, employee.id)
    assert len(rows) == 1
    assert rows[0].points_deducted == Decimal("2")
    assert rows[0].reference_id == conversion.id

    event = db_session.query(Notification).filter(Notification.event_type == "conversion_approved").one()
    assert event.user_id == employee.id
    assert event.leave_type_name == "Vacation Leave"


def test_request_cannot_exceed_balance(db_session, employee, set_balance):
    set_balance(employee, sl="1")
    with pytest.raises(ValidationFailed):
        CreditConversionService(db_session).request(employee.id, CreditType.SL, 2)


def test_request_rejects_unknown_type(db_session, employee, set_balance):
    set_balance(employee, vl="5")
    with pytest.raises(ValidationFailed):
        CreditConversionService(db_session).request(employee.id, "ML", 1)


def test_request_respects_annual_cap(db_session, employee, set_balance):
    set_balance(employee, vl="20")
    with pytest.raises(ValidationFailed):
        CreditConversionService(db_session).request(employee.id, "VL", 11)


def test_annual_cap_counts_approved_conversions(
    db_session, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="20")
    service = CreditConversionService(db_session)
    conversion = service.request(employee.id, "VL", 8)
    for actor in (hr_user, dept_head, primary_admin):
        service.approve(conversion.id, actor)

    check = service.eligibility(employee.id, "VL")
    assert check["available_quota"] == Decimal("2")
    with pytest.raises(ValidationFailed):
        service.request(employee.id, "VL", 3)

    stats = service.stats(employee.id)
    assert stats["total_converted_credits"] == Decimal("8")
    assert stats["total_cash_received"] == Decimal("8000.00")
    assert stats["remaining_quota"] == Decimal("2")
    assert stats["pending_requests"] == 0


def test_eligibility_without_credits(db_session, employee):
    check = CreditConversionService(db_session).eligibility(employee.id, "SL")
    assert check["eligible"] is False
    assert check["available_balance"] == Decimal("0")


def test_stage_must_match_actor(db_session, employee, hr_user, dept_head, set_balance):
    set_balance(employee, vl="5")
    service = CreditConversionService(db_session)
    conversion = service.request(employee.id, "VL", 1)

    with pytest.raises(Unauthorized):
        service.approve(conversion.id, dept_head)

    service.approve(conversion.id, hr_user)
    with pytest.raises(InvalidTransition):
        service.approve(conversion.id, hr_user)


def test_admin_stage_requires_current_approver(
    db_session, employee, hr_user, dept_head, primary_admin, second_admin, set_balance
):
    set_balance(employee, vl="5")
    service = CreditConversionService(db_session)
    conversion = service.request(employee.id, "VL", 1)
    service.approve(conversion.id, hr_user)
    service.approve(conversion.id, dept_head)

    with pytest.raises(Unauthorized):
        service.approve(conversion.id, second_admin)
    assert service.get(conversion.id).status == ConversionStatus.DEPT_HEAD_APPROVED.value


def test_completed_conversion_is_terminal(
    db_session, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="5")
    service = CreditConversionService(db_session)
    conversion = service.request(employee.id, "VL", 1)
    for actor in (hr_user, dept_head, primary_admin):
        service.approve(conversion.id, actor)

    with pytest.raises(InvalidTransition):
        service.reject(conversion.id, primary_admin, "too late")


def test_reject_requires_remarks(db_session, employee, hr_user, set_balance):
    set_balance(employee, vl="5")
    service = CreditConversionService(db_session)
    conversion = service.request(employee.id, "VL", 1)

    with pytest.raises(ValidationFailed):
        service.reject(conversion.id, hr_user, "")


def test_rejection_leaves_balance_untouched(db_session, employee, hr_user, dept_head, set_balance):
    set_balance(employee, vl="5")
    service = CreditConversionService(db_session)
    conversion = service.request(employee.id, "VL", 2)
    service.approve(conversion.id, hr_user)

    conversion = service.reject(conversion.id, dept_head, "Budget freeze")

    assert conversion.status == ConversionStatus.REJECTED.value
    assert conversion.dept_head_remarks == "Budget freeze"
    assert LeaveLedgerService(db_session).balances(employee.id)["vl_balance"] == Decimal("5")
    event = db_session.query(Notification).filter(Notification.event_type == "conversion_rejected").one()
    assert event.remarks == "Budget freeze"


def test_spent_credits_block_admin_stage(
    db_session, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="2")
    service = CreditConversionService(db_session)
    conversion = service.request(employee.id, "VL", 2)
    service.approve(conversion.id, hr_user)
    service.approve(conversion.id, dept_head)

    # Credits are still usable for leave until the admin stage
    LeaveLedgerService(db_session).deduct(employee.id, "VL", 1, remarks="usage")
    db_session.commit()

    with pytest.raises(InsufficientBalance):
        service.approve(conversion.id, primary_admin)
    assert service.get(conversion.id).status == ConversionStatus.DEPT_HEAD_APPROVED.value
    assert _conversion_rows(db_session, employee.id) == []
