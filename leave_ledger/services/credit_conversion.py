"""
Credit Conversion Workflow

Monetization of SL/VL credits through a fixed three-stage chain:

    pending -> hr_approved -> dept_head_approved -> admin_approved
    any stage may reject -> rejected

Credits stay in the balance (and usable for leave) until the admin stage,
which is the only point where the ledger is touched.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import extract, func

from leave_ledger.core.config import settings
from leave_ledger.core.exceptions import InvalidTransition, NotFound, Unauthorized, ValidationFailed
from leave_ledger.models.credit_conversion import ConversionStatus, CreditConversion
from leave_ledger.models.leave_credit import CreditType, LedgerReason
from leave_ledger.models.user import User, UserRole
from leave_ledger.services.base import BaseService
from leave_ledger.services.delegation import DelegationService
from leave_ledger.services.leave_ledger import LeaveLedgerService, to_points
from leave_ledger.services.notification import LeaveEvent, NotificationService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# status -> (stage prefix, directory role allowed to act, status after approval)
STAGES = {
    ConversionStatus.PENDING: ("hr", UserRole.HR, ConversionStatus.HR_APPROVED),
    ConversionStatus.HR_APPROVED: ("dept_head", UserRole.DEPT_HEAD, ConversionStatus.DEPT_HEAD_APPROVED),
    ConversionStatus.DEPT_HEAD_APPROVED: ("admin", UserRole.ADMIN, ConversionStatus.ADMIN_APPROVED),
}
STAGE_ORDER = [UserRole.HR, UserRole.DEPT_HEAD, UserRole.ADMIN]

LEAVE_TYPE_NAMES = {CreditType.SL.value: "Sick Leave", CreditType.VL.value: "Vacation Leave"}


def equivalent_cash(monthly_salary: Union[Decimal, float, int], credits_requested: Union[Decimal, float, int]) -> Decimal:
    """round((monthly_salary / working days per month) * credits, 2)"""
    salary = Decimal(str(monthly_salary))
    credits = Decimal(str(credits_requested))
    daily_rate = salary / Decimal(settings.conversion.working_days_per_month)
    return (daily_rate * credits).quantize(CENTS, rounding=ROUND_HALF_UP)


class CreditConversionService(BaseService):

    def __init__(self, db):
        super().__init__(db)
        self.ledger = LeaveLedgerService(db)
        self.delegation = DelegationService(db)

    def request(
        self,
        employee_id: int,
        leave_type: Union[CreditType, str],
        credits_requested: Union[Decimal, float, int],
        remarks: Optional[str] = None,
        today: Optional[date] = None
    ) -> CreditConversion:
        employee = self.db.get(User, employee_id)
        if not employee:
            raise NotFound("User", employee_id)
        try:
            credit_type = CreditType(leave_type)
        except ValueError:
            raise ValidationFailed("Only SL or VL credits can be converted", {"leave_type": str(leave_type)})
        credits = Decimal(str(credits_requested)).quantize(CENTS, rounding=ROUND_HALF_UP)
        if credits <= 0:
            raise ValidationFailed("Credits requested must be positive")

        check = self.eligibility(employee_id, credit_type, today)
        available = check["available_balance"]
        if credits > available:
            raise ValidationFailed(
                f"Requested credits exceed available {credit_type.value} balance",
                {"available": str(available), "requested": str(credits)}
            )
        if credits > check["available_quota"]:
            raise ValidationFailed(
                "Annual conversion quota exceeded",
                {"available_quota": str(check["available_quota"]), "requested": str(credits)}
            )

        conversion = CreditConversion(
            employee_id=employee.id,
            leave_type=credit_type.value,
            credits_requested=credits,
            equivalent_cash=equivalent_cash(employee.monthly_salary or 0, credits),
            status=ConversionStatus.PENDING.value,
            employee_remarks=remarks,
        )
        self.db.add(conversion)
        self.commit()
        self.db.refresh(conversion)
        logger.info(f"Conversion {conversion.id}: employee {employee.id} requested {credits} {credit_type.value} for {conversion.equivalent_cash}")
        return conversion

    def get(self, conversion_id: int, lock: bool = False) -> CreditConversion:
        if lock:
            # Reload past the identity map so stage checks see the committed status
            conversion = (
                self.db.query(CreditConversion)
                .filter(CreditConversion.id == conversion_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        else:
            conversion = self.db.get(CreditConversion, conversion_id)
        if not conversion:
            raise NotFound("Credit conversion", conversion_id)
        return conversion

    def list_conversions(self, employee_id: Optional[int] = None, status: Optional[str] = None) -> List[CreditConversion]:
        query = self.db.query(CreditConversion)
        if employee_id:
            query = query.filter(CreditConversion.employee_id == employee_id)
        if status:
            query = query.filter(CreditConversion.status == status)
        return query.order_by(CreditConversion.id.desc()).all()

    def approve(self, conversion_id: int, actor: User, remarks: Optional[str] = None, today: Optional[date] = None) -> CreditConversion:
        conversion = self.get(conversion_id, lock=True)
        status, prefix, next_status = self._authorize_stage(conversion, actor, today)

        with self.db.begin_nested():
            self._advance(conversion, status, next_status)
            if next_status == ConversionStatus.ADMIN_APPROVED:
                # InsufficientBalance here rolls the status move back with the savepoint
                self.ledger.deduct(
                    conversion.employee_id,
                    conversion.leave_type,
                    conversion.credits_requested,
                    remarks=f"Converted to cash under credit conversion #{conversion.id}",
                    on_date=self.resolve_today(today),
                    reason=LedgerReason.CONVERSION,
                    reference_id=conversion.id,
                )

        self._stamp(conversion, prefix, actor, remarks)
        if next_status == ConversionStatus.ADMIN_APPROVED:
            self._notify(conversion, LeaveEvent.CONVERSION_APPROVED, remarks)

        self.commit()
        self.db.refresh(conversion)
        logger.info(f"Conversion {conversion.id} {next_status.value} by user {actor.id}")
        return conversion

    def reject(self, conversion_id: int, actor: User, remarks: str, today: Optional[date] = None) -> CreditConversion:
        if not remarks or not remarks.strip():
            raise ValidationFailed("Remarks are required when rejecting a credit conversion")
        conversion = self.get(conversion_id, lock=True)
        status, prefix, _ = self._authorize_stage(conversion, actor, today)

        self._advance(conversion, status, ConversionStatus.REJECTED)
        self._stamp(conversion, prefix, actor, remarks)
        self._notify(conversion, LeaveEvent.CONVERSION_REJECTED, remarks)

        self.commit()
        self.db.refresh(conversion)
        logger.info(f"Conversion {conversion.id} rejected at {prefix} stage by user {actor.id}")
        return conversion

    def eligibility(self, employee_id: int, leave_type: Union[CreditType, str], today: Optional[date] = None) -> Dict[str, Any]:
        credit_type = CreditType(leave_type)
        year = self.resolve_today(today).year
        available = self.ledger.balances(employee_id)[f"{credit_type.value.lower()}_balance"]
        converted = self._converted_in_year(employee_id, year)
        quota = max(Decimal("0"), to_points(settings.conversion.annual_cap) - converted)

        if available <= 0:
            eligible, reason = False, f"No {credit_type.value} credits available"
        elif quota <= 0:
            eligible, reason = False, f"Maximum annual quota reached ({settings.conversion.annual_cap} days)"
        else:
            eligible, reason = True, "Eligible for conversion"
        return {
            "eligible": eligible,
            "reason": reason,
            "available_balance": available,
            "available_quota": quota,
        }

    def stats(self, employee_id: int, year: Optional[int] = None) -> Dict[str, Any]:
        year = year or date.today().year
        approved = self._year_query(employee_id, year).filter(
            CreditConversion.status == ConversionStatus.ADMIN_APPROVED.value
        )
        total_credits = approved.with_entities(func.coalesce(func.sum(CreditConversion.credits_requested), 0)).scalar()
        total_cash = approved.with_entities(func.coalesce(func.sum(CreditConversion.equivalent_cash), 0)).scalar()
        in_flight = self._year_query(employee_id, year).filter(
            CreditConversion.status.notin_([ConversionStatus.ADMIN_APPROVED.value, ConversionStatus.REJECTED.value])
        ).count()
        total_credits = to_points(total_credits)
        return {
            "year": year,
            "total_converted_credits": total_credits,
            "total_cash_received": Decimal(str(total_cash)).quantize(CENTS),
            "pending_requests": in_flight,
            "remaining_quota": max(Decimal("0"), to_points(settings.conversion.annual_cap) - total_credits),
        }

    # ------------------------------------------------------------------

    def _authorize_stage(self, conversion: CreditConversion, actor: User, today: Optional[date]):
        try:
            status = ConversionStatus(conversion.status)
        except ValueError:
            status = None
        if status not in STAGES:
            raise InvalidTransition(
                f"Credit conversion {conversion.id} is already {conversion.status}",
                {"conversion_id": conversion.id, "status": conversion.status}
            )
        prefix, role, next_status = STAGES[status]
        if actor.role in STAGE_ORDER and STAGE_ORDER.index(actor.role) < STAGE_ORDER.index(role):
            raise InvalidTransition(
                f"{actor.role.value} stage of credit conversion {conversion.id} is already complete",
                {"conversion_id": conversion.id, "status": conversion.status}
            )
        if role == UserRole.ADMIN:
            if not self.delegation.is_current_approver(actor, today):
                raise Unauthorized("Only the current approver can act at the admin stage")
        elif actor.role != role:
            raise Unauthorized(f"Credit conversion {conversion.id} is awaiting {prefix} action")
        return status, prefix, next_status

    def _advance(self, conversion: CreditConversion, expected: ConversionStatus, target: ConversionStatus) -> None:
        """
        Move the status with a conditional UPDATE. Zero matched rows means
        another actor already moved this conversion out of `expected`.
        """
        moved = (
            self.db.query(CreditConversion)
            .filter(CreditConversion.id == conversion.id, CreditConversion.status == expected.value)
            .update({CreditConversion.status: target.value}, synchronize_session=False)
        )
        if moved != 1:
            logger.warning(f"Conversion {conversion.id} left {expected.value} concurrently; {target.value} refused")
            raise InvalidTransition(
                f"Credit conversion {conversion.id} is no longer {expected.value}",
                {"conversion_id": conversion.id, "expected": expected.value}
            )
        conversion.status = target.value

    @staticmethod
    def _stamp(conversion: CreditConversion, prefix: str, actor: User, remarks: Optional[str]) -> None:
        setattr(conversion, f"{prefix}_approved_by", actor.id)
        setattr(conversion, f"{prefix}_approved_at", datetime.now(timezone.utc))
        setattr(conversion, f"{prefix}_remarks", remarks)

    def _notify(self, conversion: CreditConversion, event: LeaveEvent, remarks: Optional[str]) -> None:
        NotificationService.emit(
            self.db,
            employee_id=conversion.employee_id,
            event_type=event,
            request_id=conversion.id,
            leave_type_name=LEAVE_TYPE_NAMES.get(conversion.leave_type, conversion.leave_type),
            remarks=remarks,
        )

    def _year_query(self, employee_id: int, year: int):
        return self.db.query(CreditConversion).filter(
            CreditConversion.employee_id == employee_id,
            extract("year", CreditConversion.submitted_at) == year,
        )

    def _converted_in_year(self, employee_id: int, year: int) -> Decimal:
        total = self._year_query(employee_id, year).filter(
            CreditConversion.status == ConversionStatus.ADMIN_APPROVED.value
        ).with_entities(func.coalesce(func.sum(CreditConversion.credits_requested), 0)).scalar()
        return to_points(total)
