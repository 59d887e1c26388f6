"""
Leave Credit Ledger

Sole owner of LeaveCredit balances and the append-only LeaveCreditLog.
Every balance change goes through this module and is written together with
exactly one ledger row per credit type touched.

Transactions:
- Mutations lock the employee's LeaveCredit row (SELECT ... FOR UPDATE)
  before reading the balance, so two concurrent deductions cannot both
  read the same balance_before.
- Mutations flush but never commit. The calling service commits the
  balance change, the ledger row and its own state change together.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_ledger.core.config import settings
from leave_ledger.core.exceptions import InsufficientBalance, ValidationFailed
from leave_ledger.models.leave_credit import CreditType, LeaveCredit, LeaveCreditLog, LedgerReason
from leave_ledger.services.base import BaseService

logger = logging.getLogger(__name__)

LEDGER_QUANTUM = Decimal("0.000001")
LATE_QUANTUM = Decimal("0.001")

Number = Union[Decimal, int, float, str]


def to_points(value: Number) -> Decimal:
    """Normalize an amount to ledger precision."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(LEDGER_QUANTUM, rounding=ROUND_HALF_UP)


def late_minutes_to_days(late_minutes: int) -> Decimal:
    """
    Day fraction charged for late minutes: minutes over an eight-hour day,
    rounded half-up to three places, with minutes capped at the hourly cap
    (60 minutes = 0.125 day).
    """
    minutes = min(int(late_minutes), settings.leave.late_minutes_cap)
    fraction = Decimal(minutes) / Decimal(settings.leave.late_minutes_per_day)
    return fraction.quantize(LATE_QUANTUM, rounding=ROUND_HALF_UP)


class LeaveLedgerService(BaseService):

    def get_or_create(self, employee_id: int, lock: bool = False) -> LeaveCredit:
        """Return the employee's LeaveCredit row, creating it with zero balances on first use."""
        query = self.db.query(LeaveCredit).filter(LeaveCredit.employee_id == employee_id)
        if lock:
            query = query.with_for_update()
        credit = query.first()
        if credit:
            return credit

        credit = LeaveCredit(
            employee_id=employee_id,
            sl_balance=Decimal("0"),
            vl_balance=Decimal("0"),
            last_updated=None,
        )
        try:
            with self.db.begin_nested():
                self.db.add(credit)
        except IntegrityError:
            # Lost the race to a concurrent first accrual/deduction
            logger.info(f"LeaveCredit for employee {employee_id} created concurrently; reloading")
            credit = query.one()
        return credit

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def accrue_daily(
        self,
        employee_id: int,
        as_of: Optional[date] = None,
        rate: Optional[Number] = None
    ) -> bool:
        """
        Add the daily earned credit to both SL and VL.

        Idempotent per calendar day: returns False without touching anything
        when the employee was already credited for `as_of`.
        """
        as_of = self.resolve_today(as_of)
        rate = to_points(rate if rate is not None else settings.leave.daily_accrual_rate)
        if rate <= 0:
            raise ValidationFailed("Accrual rate must be positive", {"rate": str(rate)})

        credit = self.get_or_create(employee_id, lock=True)
        if credit.last_updated == as_of:
            logger.info(f"Employee {employee_id} already credited for {as_of}; skipping")
            return False

        for credit_type in (CreditType.SL, CreditType.VL):
            before = to_points(credit.balance_for(credit_type))
            after = before + rate
            credit.set_balance(credit_type, after)
            self._append(
                employee_id, credit_type, as_of,
                points=-rate, before=before, after=after,
                reason=LedgerReason.ACCRUAL,
                remarks=f"Daily earned leave credit (+{rate})",
            )
        credit.last_updated = as_of
        self.db.flush()

        logger.info(
            "Daily credits added",
            extra={
                "employee_id": employee_id,
                "as_of": as_of.isoformat(),
                "rate": str(rate),
                "sl_balance": str(credit.sl_balance),
                "vl_balance": str(credit.vl_balance),
            }
        )
        return True

    def deduct(
        self,
        employee_id: int,
        credit_type: Union[CreditType, str],
        points: Number,
        remarks: str,
        on_date: Optional[date] = None,
        reason: LedgerReason = LedgerReason.LEAVE_USAGE,
        reference_id: Optional[int] = None
    ) -> LeaveCreditLog:
        """
        Decrement a balance and write its ledger row.

        Raises InsufficientBalance, with nothing written, when the balance
        would go negative.
        """
        credit_type = CreditType(credit_type)
        points = to_points(points)
        if points <= 0:
            raise ValidationFailed("Points to deduct must be positive", {"points": str(points)})

        credit = self.get_or_create(employee_id, lock=True)
        before = to_points(credit.balance_for(credit_type))
        after = before - points
        if after < 0:
            logger.warning(
                f"Insufficient {credit_type.value} balance for employee {employee_id}: "
                f"{before} available, {points} required"
            )
            raise InsufficientBalance(credit_type.value, before, points)

        credit.set_balance(credit_type, after)
        entry = self._append(
            employee_id, credit_type, self.resolve_today(on_date),
            points=points, before=before, after=after,
            reason=reason, remarks=remarks, reference_id=reference_id,
        )
        self.db.flush()
        logger.info(
            f"Deducted {points} {credit_type.value} from employee {employee_id}",
            extra={"balance_before": str(before), "balance_after": str(after), "reason": LedgerReason(reason).value}
        )
        return entry

    def restore(
        self,
        employee_id: int,
        credit_type: Union[CreditType, str],
        points: Number,
        remarks: str,
        on_date: Optional[date] = None,
        reason: LedgerReason = LedgerReason.RESTORATION,
        reference_id: Optional[int] = None
    ) -> LeaveCreditLog:
        """Increment a balance; the ledger row carries a negative points_deducted."""
        credit_type = CreditType(credit_type)
        points = to_points(points)
        if points <= 0:
            raise ValidationFailed("Points to restore must be positive", {"points": str(points)})

        credit = self.get_or_create(employee_id, lock=True)
        before = to_points(credit.balance_for(credit_type))
        after = before + points
        credit.set_balance(credit_type, after)
        entry = self._append(
            employee_id, credit_type, self.resolve_today(on_date),
            points=-points, before=before, after=after,
            reason=reason, remarks=remarks, reference_id=reference_id,
        )
        self.db.flush()
        logger.info(
            f"Restored {points} {credit_type.value} to employee {employee_id}",
            extra={"balance_before": str(before), "balance_after": str(after), "reason": LedgerReason(reason).value}
        )
        return entry

    def deduct_for_lateness(self, employee_id: int, late_minutes: int, on_date: Optional[date] = None) -> LeaveCreditLog:
        """Charge tardiness against VL, tagged with the `late` reason code."""
        if late_minutes <= 0:
            raise ValidationFailed("Late minutes must be positive", {"late_minutes": late_minutes})
        fraction = late_minutes_to_days(late_minutes)
        return self.deduct(
            employee_id, CreditType.VL, fraction,
            remarks="Late",
            on_date=on_date,
            reason=LedgerReason.LATE,
        )

    def _append(
        self,
        employee_id: int,
        credit_type: CreditType,
        on_date: date,
        points: Decimal,
        before: Decimal,
        after: Decimal,
        reason: LedgerReason,
        remarks: Optional[str],
        reference_id: Optional[int] = None
    ) -> LeaveCreditLog:
        entry = LeaveCreditLog(
            employee_id=employee_id,
            type=credit_type.value,
            date=on_date,
            year=on_date.year,
            month=on_date.month,
            points_deducted=points,
            balance_before=before,
            balance_after=after,
            reason=LedgerReason(reason).value,
            reference_id=reference_id,
            remarks=remarks,
        )
        self.db.add(entry)
        return entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def balances(self, employee_id: int) -> Dict[str, object]:
        """Current balances without creating the row."""
        credit = self.db.query(LeaveCredit).filter(LeaveCredit.employee_id == employee_id).first()
        if not credit:
            return {"employee_id": employee_id, "sl_balance": Decimal("0"), "vl_balance": Decimal("0"), "last_updated": None}
        return {
            "employee_id": employee_id,
            "sl_balance": to_points(credit.sl_balance),
            "vl_balance": to_points(credit.vl_balance),
            "last_updated": credit.last_updated,
        }

    def history(
        self,
        employee_id: int,
        credit_type: Optional[Union[CreditType, str]] = None,
        year: Optional[int] = None
    ) -> List[LeaveCreditLog]:
        query = self.db.query(LeaveCreditLog).filter(LeaveCreditLog.employee_id == employee_id)
        if credit_type:
            query = query.filter(LeaveCreditLog.type == CreditType(credit_type).value)
        if year:
            query = query.filter(LeaveCreditLog.year == year)
        return query.order_by(LeaveCreditLog.id).all()

    def latest_entry(self, employee_id: int, credit_type: Union[CreditType, str]) -> Optional[LeaveCreditLog]:
        return (
            self.db.query(LeaveCreditLog)
            .filter(
                LeaveCreditLog.employee_id == employee_id,
                LeaveCreditLog.type == CreditType(credit_type).value,
            )
            .order_by(LeaveCreditLog.id.desc())
            .first()
        )

    def used_totals(self, employee_id: int, year: int) -> Dict[str, Dict[str, Decimal]]:
        """
        Per-type totals for a year, split by reason code so lateness is never
        mistaken for ordinary leave usage.
        """
        rows = (
            self.db.query(
                LeaveCreditLog.type,
                LeaveCreditLog.reason,
                func.sum(LeaveCreditLog.points_deducted),
            )
            .filter(LeaveCreditLog.employee_id == employee_id, LeaveCreditLog.year == year)
            .group_by(LeaveCreditLog.type, LeaveCreditLog.reason)
            .all()
        )
        totals = {
            t.value: {"earned": Decimal("0"), "used": Decimal("0"), "late": Decimal("0"),
                      "converted": Decimal("0"), "restored": Decimal("0")}
            for t in CreditType
        }
        for credit_type, reason, amount in rows:
            amount = to_points(amount or 0)
            bucket = totals[credit_type]
            if reason == LedgerReason.ACCRUAL.value:
                bucket["earned"] += -amount
            elif reason == LedgerReason.LATE.value:
                bucket["late"] += amount
            elif reason == LedgerReason.CONVERSION.value:
                bucket["converted"] += amount
            elif reason in (LedgerReason.RESTORATION.value, LedgerReason.RECALL_RESTORE.value):
                bucket["restored"] += -amount
            else:
                bucket["used"] += amount
        return totals

    def monthly_summary(self, employee_id: int, year: int, credit_type: Union[CreditType, str]) -> List[Dict[str, object]]:
        """
        Month-by-month replay of one credit type, computed from ledger rows
        only. Months without activity carry the previous closing balance.
        """
        credit_type = CreditType(credit_type)
        previous = (
            self.db.query(LeaveCreditLog)
            .filter(
                LeaveCreditLog.employee_id == employee_id,
                LeaveCreditLog.type == credit_type.value,
                LeaveCreditLog.year < year,
            )
            .order_by(LeaveCreditLog.id.desc())
            .first()
        )
        rows = self.history(employee_id, credit_type, year)

        balance = to_points(previous.balance_after) if previous else None
        if balance is None:
            balance = to_points(rows[0].balance_before) if rows else Decimal("0")

        summary = []
        for month in range(1, 13):
            month_rows = [r for r in rows if r.month == month]
            entry = {
                "month": month,
                "opening_balance": balance,
                "earned": Decimal("0"),
                "used": Decimal("0"),
                "late": Decimal("0"),
                "converted": Decimal("0"),
                "restored": Decimal("0"),
            }
            for row in month_rows:
                points = to_points(row.points_deducted)
                if row.reason == LedgerReason.ACCRUAL.value:
                    entry["earned"] += -points
                elif row.reason == LedgerReason.LATE.value:
                    entry["late"] += points
                elif row.reason == LedgerReason.CONVERSION.value:
                    entry["converted"] += points
                elif points < 0:
                    entry["restored"] += -points
                else:
                    entry["used"] += points
            if month_rows:
                balance = to_points(max(month_rows, key=lambda r: r.id).balance_after)
            entry["closing_balance"] = balance
            summary.append(entry)
        return summary
