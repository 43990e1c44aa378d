"""Raw ERP records and the domain entries built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

from coop_finance.ledger.classification import BalanceSheetCategory, CashFlowCategory
from coop_finance.ledger.money import ZERO, to_decimal

T = TypeVar("T")


def _many2one_id(value: Any) -> int | None:
    """Id part of an Odoo many2one value (``[id, display_name]`` or ``False``)."""
    if isinstance(value, (list, tuple)) and value:
        return int(value[0])
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _text(value: Any) -> str:
    # Odoo returns False for empty char fields
    return value if isinstance(value, str) else ""


# === Raw records (transient, as fetched) ===


@dataclass(frozen=True)
class RawLedgerLine:
    """One posted ``account.move.line``."""

    account_ref: int | None
    date: str
    debit: Decimal
    credit: Decimal
    description: str = ""
    reference: str = ""
    journal_ref: int | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> RawLedgerLine:
        return cls(
            account_ref=_many2one_id(record.get("account_id")),
            date=_text(record.get("date")),
            debit=to_decimal(record.get("debit")),
            credit=to_decimal(record.get("credit")),
            description=_text(record.get("name")),
            reference=_text(record.get("ref")),
            journal_ref=_many2one_id(record.get("journal_id")),
        )


@dataclass(frozen=True)
class AccountDescriptor:
    """One ``account.account`` row of the chart of accounts."""

    account_ref: int
    code: str
    name: str
    account_type: str

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> AccountDescriptor:
        return cls(
            account_ref=int(record["id"]),
            code=_text(record.get("code")),
            name=_text(record.get("name")),
            account_type=_text(record.get("account_type")),
        )


@dataclass(frozen=True)
class PaymentRecord:
    """One posted ``account.payment``."""

    payment_ref: int
    name: str
    amount: Decimal
    payment_type: str
    date: str = ""
    payment_reference: str = ""

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PaymentRecord:
        return cls(
            payment_ref=int(record["id"]),
            name=_text(record.get("name")),
            amount=to_decimal(record.get("amount")),
            payment_type=_text(record.get("payment_type")),
            date=_text(record.get("date")),
            payment_reference=_text(record.get("payment_reference")),
        )

    @property
    def is_inbound(self) -> bool:
        return self.payment_type == "inbound"


@dataclass(frozen=True)
class PartnerRecord:
    """One ``res.partner`` member with its receivable/payable totals."""

    partner_ref: int
    name: str
    ref: str = ""
    credit: Decimal = ZERO
    debit: Decimal = ZERO

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PartnerRecord:
        return cls(
            partner_ref=int(record["id"]),
            name=_text(record.get("name")),
            ref=_text(record.get("ref")),
            credit=to_decimal(record.get("credit")),
            debit=to_decimal(record.get("debit")),
        )


# === Domain entries ===


@dataclass(frozen=True)
class BalanceSheetEntry:
    """Cumulative-to-date balance of one account."""

    account_code: str
    account_name: str
    category: BalanceSheetCategory
    subcategory: str
    period_debit: Decimal
    period_credit: Decimal
    final_debit: Decimal
    final_credit: Decimal
    initial_debit: Decimal = ZERO
    initial_credit: Decimal = ZERO
    source_id: str = ""

    @property
    def debit_balance(self) -> Decimal:
        """Final debit minus final credit (natural sign for assets)."""
        return self.final_debit - self.final_credit

    @property
    def credit_balance(self) -> Decimal:
        """Final credit minus final debit (natural sign for liabilities and equity)."""
        return self.final_credit - self.final_debit

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountCode": self.account_code,
            "accountName": self.account_name,
            "category": self.category.value,
            "subcategory": self.subcategory,
            "initialDebit": float(self.initial_debit),
            "initialCredit": float(self.initial_credit),
            "periodDebit": float(self.period_debit),
            "periodCredit": float(self.period_credit),
            "finalDebit": float(self.final_debit),
            "finalCredit": float(self.final_credit),
            "odooId": self.source_id,
        }


@dataclass(frozen=True)
class CashFlowEntry:
    """Net movement of one account (or one payment) within a period."""

    description: str
    amount: Decimal
    category: CashFlowCategory
    source_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category.value,
            "odooId": self.source_id,
        }


class MembershipStatus(str, Enum):
    """Whether a member has covered the expected contribution."""

    UP_TO_DATE = "up_to_date"
    WITH_DEBT = "with_debt"


@dataclass(frozen=True)
class MembershipFee:
    """Contribution standing of one cooperative member."""

    member_id: str
    member_name: str
    expected_contribution: Decimal
    payment_made: Decimal
    debt: Decimal
    status: MembershipStatus
    partner_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "memberId": self.member_id,
            "memberName": self.member_name,
            "expectedContribution": float(self.expected_contribution),
            "paymentMade": float(self.payment_made),
            "debt": float(self.debt),
            "status": self.status.value,
            "odooPartnerId": self.partner_id,
        }


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one aggregation; failures carry a message instead of raising."""

    success: bool
    records: list[T] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def ok(cls, records: list[T]) -> FetchResult[T]:
        return cls(success=True, records=records)

    @classmethod
    def failed(cls, error: str) -> FetchResult[T]:
        return cls(success=False, records=[], error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "records": [record.to_dict() for record in self.records],  # type: ignore[attr-defined]
        }
        if self.error is not None:
            data["error"] = self.error
        return data
