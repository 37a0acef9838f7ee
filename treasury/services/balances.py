"""Balance calculation for a single dues record.

Everything here is pure: callers pass a dues row and its payments and get back
the derived figures. ``outstanding`` keeps the signed difference so overpayment
can be detected; ``remaining_amount`` is the clamped figure shown to users.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from ..constants import DuesStatus
from ..models.models import Dues, Payment


@dataclass(frozen=True)
class DuesBalance:
    dues_id: Optional[int]
    month: int
    year: int
    amount: int
    total_paid: int
    outstanding: int
    status: str

    @property
    def remaining_amount(self) -> int:
        return max(0, self.outstanding)

    @property
    def overpaid(self) -> bool:
        return self.outstanding < 0

    def as_view(self) -> dict:
        return {
            "dues_id": self.dues_id,
            "month": self.month,
            "year": self.year,
            "amount": self.amount,
            "total_paid": self.total_paid,
            "remaining_amount": self.remaining_amount,
            "status": self.status,
        }


def derive_status(amount: int, total_paid: int) -> str:
    if total_paid <= 0:
        return DuesStatus.PENDING
    if total_paid >= amount:
        return DuesStatus.PAID
    return DuesStatus.PARTIAL


def sum_payments(payments: Iterable[Payment]) -> int:
    return sum(int(payment.amount or 0) for payment in payments)


def calculate_balance(dues: Dues, payments: Optional[Iterable[Payment]] = None) -> DuesBalance:
    """Derive paid, remaining and status for ``dues``.

    ``payments`` defaults to the record's own ``payments`` relationship.
    """
    total_paid = sum_payments(dues.payments if payments is None else payments)
    amount = int(dues.amount)
    return DuesBalance(
        dues_id=dues.id,
        month=dues.month,
        year=dues.year,
        amount=amount,
        total_paid=total_paid,
        outstanding=amount - total_paid,
        status=derive_status(amount, total_paid),
    )


def unbilled_balance(month: int, year: int, amount: int) -> DuesBalance:
    """Balance for a period that has no dues record yet."""
    return DuesBalance(
        dues_id=None,
        month=month,
        year=year,
        amount=amount,
        total_paid=0,
        outstanding=amount,
        status=DuesStatus.PENDING,
    )
