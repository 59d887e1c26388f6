import pytest
from datetime import date
from decimal import Decimal

from leave_ledger.core.exceptions import InvalidTransition, NotFound, Unauthorized, ValidationFailed
from leave_ledger.models.delegation import DelegatedApprover
from leave_ledger.models.leave_credit import LeaveCreditLog, LedgerReason
from leave_ledger.models.leave_request import ApprovalRole, LeaveApproval, LeaveStatus
from leave_ledger.models.notification import Notification
from leave_ledger.models.user import UserRole
from leave_ledger.services.leave_ledger import LeaveLedgerService
from leave_ledger.services.leave_workflow import LeaveWorkflowService, required_roles

TODAY = date(2024, 3, 6)  # Wednesday
MON, WED, FRI = date(2024, 3, 11), date(2024, 3, 13), date(2024, 3, 15)


def _usage_rows(db_session, employee_id):
    return db_session.query(LeaveCreditLog).filter(
        LeaveCreditLog.employee_id == employee_id,
        LeaveCreditLog.reason == LedgerReason.LEAVE_USAGE.value,
    ).all()


def _approve_through(service, request, *actors):
    for actor in actors:
        request = service.approve(request.id, actor, remarks="ok", today=TODAY)
    return request


def test_required_roles_table():
    assert required_roles(UserRole.EMPLOYEE) == (ApprovalRole.HR, ApprovalRole.DEPT_HEAD, ApprovalRole.ADMIN)
    assert required_roles("hr") == (ApprovalRole.HR, ApprovalRole.DEPT_HEAD, ApprovalRole.ADMIN)
    assert required_roles("dept_head") == (ApprovalRole.HR, ApprovalRole.ADMIN)
    assert required_roles(UserRole.ADMIN) == (ApprovalRole.HR, ApprovalRole.ADMIN)


def test_submit_snapshots_requester_role(db_session, leave_types, employee):
    request = LeaveWorkflowService(db_session).submit(employee.id, "VL", MON, WED, reason="Trip")

    assert request.status == LeaveStatus.PENDING.value
    assert request.requester_role_snapshot == "employee"
    assert request.days_with_pay == 0


def test_submit_rejects_inverted_range(db_session, leave_types, employee):
    with pytest.raises(ValidationFailed):
        LeaveWorkflowService(db_session).submit(employee.id, "VL", WED, MON)


def test_submit_rejects_selected_date_outside_range(db_session, leave_types, employee):
    with pytest.raises(ValidationFailed):
        LeaveWorkflowService(db_session).submit(employee.id, "VL", MON, WED, selected_dates=[FRI])


def test_submit_unknown_leave_type(db_session, leave_types, employee):
    with pytest.raises(NotFound):
        LeaveWorkflowService(db_session).submit(employee.id, "XX", MON, WED)


def test_scenario_full_approval_deducts_working_days(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="5")
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)

    request = service.approve(request.id, hr_user, today=TODAY)
    assert request.status == LeaveStatus.PENDING_DEPT_HEAD.value
    request = service.approve(request.id, dept_head, today=TODAY)
    assert request.status == LeaveStatus.PENDING_ADMIN.value
    request = service.approve(request.id, primary_admin, remarks="Enjoy", today=TODAY)

    assert request.status == LeaveStatus.APPROVED.value
    assert request.days_with_pay == Decimal("3")
    assert request.days_without_pay == Decimal("0")
    assert LeaveLedgerService(db_session).balances(employee.id)["vl_balance"] == Decimal("2")

    rows = _usage_rows(db_session, employee.id)
    assert len(rows) == 1
    assert rows[0].points_deducted == Decimal("3")
    assert rows[0].date == MON
    assert rows[0].reference_id == request.id
    assert rows[0].remarks == f"Auto deducted after Admin approval of leave request ID #{request.id}"


def test_scenario_insufficient_balance_approves_without_pay(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="1")
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)

    request = _approve_through(service, request, hr_user, dept_head, primary_admin)

    assert request.status == LeaveStatus.APPROVED.value
    assert request.days_with_pay == Decimal("0")
    assert request.days_without_pay == Decimal("3")
    assert LeaveLedgerService(db_session).balances(employee.id)["vl_balance"] == Decimal("1")
    assert _usage_rows(db_session, employee.id) == []


def test_scenario_dept_head_requester_skips_dept_head_gate(
    db_session, leave_types, make_user, hr_user, primary_admin, set_balance
):
    requester = make_user(UserRole.DEPT_HEAD)
    set_balance(requester, sl="4")
    service = LeaveWorkflowService(db_session)
    request = service.submit(requester.id, "SL", MON, MON)

    request = service.approve(request.id, hr_user, today=TODAY)
    assert request.status == LeaveStatus.PENDING_ADMIN.value
    request = service.approve(request.id, primary_admin, today=TODAY)

    assert request.status == LeaveStatus.APPROVED.value
    roles = {a.role for a in request.approvals}
    assert roles == {"hr", "admin"}
    assert db_session.query(LeaveApproval).filter(
        LeaveApproval.leave_id == request.id, LeaveApproval.role == "dept_head"
    ).count() == 0


def test_dept_head_cannot_act_on_request_without_that_gate(
    db_session, leave_types, make_user, hr_user, dept_head
):
    requester = make_user(UserRole.ADMIN)
    service = LeaveWorkflowService(db_session)
    request = service.submit(requester.id, "VL", MON, MON)
    service.approve(request.id, hr_user, today=TODAY)

    with pytest.raises(InvalidTransition):
        service.approve(request.id, dept_head, today=TODAY)


def test_gates_must_be_taken_in_order(db_session, leave_types, employee, dept_head):
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)

    with pytest.raises(InvalidTransition):
        service.approve(request.id, dept_head, today=TODAY)
    assert service.get(request.id).approvals == []


def test_duplicate_approval_is_invalid(db_session, leave_types, employee, hr_user, make_user):
    other_hr = make_user(UserRole.HR)
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)
    service.approve(request.id, hr_user, today=TODAY)

    with pytest.raises(InvalidTransition):
        service.approve(request.id, other_hr, today=TODAY)
    assert len(service.get(request.id).approvals) == 1


def test_admin_who_is_not_current_approver_is_unauthorized(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, second_admin
):
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)
    _approve_through(service, request, hr_user, dept_head)

    with pytest.raises(Unauthorized):
        service.approve(request.id, second_admin, today=TODAY)
    assert service.get(request.id).status == LeaveStatus.PENDING_ADMIN.value


def test_employee_cannot_approve(db_session, leave_types, employee, make_user):
    colleague = make_user(UserRole.EMPLOYEE)
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)

    with pytest.raises(Unauthorized):
        service.approve(request.id, colleague, today=TODAY)


def test_delegate_acts_at_admin_gate(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, second_admin, set_balance
):
    set_balance(employee, vl="5")
    db_session.add(DelegatedApprover(
        from_admin_id=primary_admin.id, to_admin_id=second_admin.id,
        start_date=TODAY, end_date=date(2024, 3, 11), status="active",
    ))
    db_session.commit()
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)
    _approve_through(service, request, hr_user, dept_head)

    with pytest.raises(Unauthorized):
        service.approve(request.id, primary_admin, today=TODAY)
    request = service.approve(request.id, second_admin, today=TODAY)

    assert request.status == LeaveStatus.APPROVED.value
    assert request.approval_for(ApprovalRole.ADMIN).approved_by == second_admin.id


def test_reject_requires_remarks(db_session, leave_types, employee, hr_user):
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)

    with pytest.raises(ValidationFailed):
        service.reject(request.id, hr_user, remarks="  ", today=TODAY)


def test_rejection_is_terminal(db_session, leave_types, employee, hr_user, dept_head):
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)

    request = service.reject(request.id, hr_user, remarks="Peak season", today=TODAY)
    assert request.status == LeaveStatus.REJECTED.value

    with pytest.raises(InvalidTransition):
        service.approve(request.id, dept_head, today=TODAY)

    event = db_session.query(Notification).filter(Notification.request_id == request.id).one()
    assert event.event_type == "rejected"
    assert event.remarks == "Peak season"
    assert event.leave_type_name == "Vacation Leave"


def test_approved_request_cannot_be_acted_on_again(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="5")
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)
    _approve_through(service, request, hr_user, dept_head, primary_admin)

    with pytest.raises(InvalidTransition):
        service.reject(request.id, primary_admin, remarks="changed my mind", today=TODAY)
    assert LeaveLedgerService(db_session).balances(employee.id)["vl_balance"] == Decimal("2")


def test_final_approval_emits_approved_event(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="5")
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, WED)
    _approve_through(service, request, hr_user, dept_head)
    assert db_session.query(Notification).filter(Notification.request_id == request.id).count() == 0

    service.approve(request.id, primary_admin, today=TODAY)

    event = db_session.query(Notification).filter(Notification.request_id == request.id).one()
    assert event.event_type == "approved"
    assert event.user_id == employee.id
    assert (event.date_from, event.date_to) == (MON, WED)


def test_weekend_only_request_has_no_ledger_effect(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="5")
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", date(2024, 3, 9), date(2024, 3, 10))

    request = _approve_through(service, request, hr_user, dept_head, primary_admin)

    assert request.status == LeaveStatus.APPROVED.value
    assert request.days_with_pay == Decimal("0")
    assert _usage_rows(db_session, employee.id) == []


def test_non_credit_leave_type_is_paid_without_ledger(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin
):
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "ML", MON, FRI)

    request = _approve_through(service, request, hr_user, dept_head, primary_admin)

    assert request.days_with_pay == Decimal("5")
    assert request.days_without_pay == Decimal("0")
    assert _usage_rows(db_session, employee.id) == []


def test_selected_dates_limit_deduction(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, set_balance
):
    set_balance(employee, vl="5")
    service = LeaveWorkflowService(db_session)
    request = service.submit(employee.id, "VL", MON, FRI, selected_dates=[MON, WED])

    request = _approve_through(service, request, hr_user, dept_head, primary_admin)

    assert request.days_with_pay == Decimal("2")
    assert LeaveLedgerService(db_session).balances(employee.id)["vl_balance"] == Decimal("3")


def test_pending_for_follows_gate(
    db_session, leave_types, employee, hr_user, dept_head, primary_admin, second_admin
):
    service = LeaveWorkflowService(db_session)
    first = service.submit(employee.id, "VL", MON, MON)
    second = service.submit(employee.id, "VL", WED, WED)
    service.approve(first.id, hr_user, today=TODAY)

    assert [r.id for r in service.pending_for(hr_user, today=TODAY)] == [second.id]
    assert [r.id for r in service.pending_for(dept_head, today=TODAY)] == [first.id]
    assert service.pending_for(primary_admin, today=TODAY) == []
    assert service.pending_for(second_admin, today=TODAY) == []
    assert service.pending_for(employee, today=TODAY) == []


def test_list_requests_filters(db_session, leave_types, employee, make_user, hr_user):
    other = make_user(UserRole.EMPLOYEE)
    service = LeaveWorkflowService(db_session)
    mine = service.submit(employee.id, "VL", MON, MON)
    service.submit(other.id, "VL", MON, MON)
    service.reject(mine.id, hr_user, remarks="no", today=TODAY)

    assert [r.id for r in service.list_requests(employee_id=employee.id)] == [mine.id]
    assert [r.id for r in service.list_requests(employee_id=employee.id, status="rejected")] == [mine.id]
    assert len(service.list_requests()) == 2
