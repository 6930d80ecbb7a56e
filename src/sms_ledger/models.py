from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sms_ledger.domain.timefmt import as_utc, utc_now


class WalletKind(str, Enum):
    MOMO = "momo"
    BANK = "bank"
    CASH = "cash"
    OTHER = "other"


class TransactionType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class CategoryName(str, Enum):
    CHURCH_CHARITY = "Church & Charity"
    FOOD_DINING = "Food & Dining"
    TRANSPORTATION = "Transportation"
    SHOPPING = "Shopping"
    UTILITIES_BILLS = "Utilities & Bills"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    EDUCATION = "Education"
    INCOME = "Income"
    TRANSFERS = "Transfers"
    CASH_WITHDRAWAL = "Cash Withdrawal"
    FEES_CHARGES = "Fees & Charges"
    OTHER = "Other"

    @classmethod
    def resolve(cls, value: Any) -> "CategoryName":
        """Map a member, a display name or an enum key onto the taxonomy; unknown values become Other."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.OTHER
        wanted = value.strip().lower()
        for member in cls:
            if wanted in (member.value.lower(), member.name.lower()):
                return member
        return cls.OTHER


def _new_id() -> str:
    return uuid4().hex


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    transaction_date: datetime
    amount: Decimal
    type: TransactionType
    source: str
    description: str
    balance: Decimal | None = None
    category: CategoryName = CategoryName.OTHER
    raw_sms: str
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("category", mode="before")
    @classmethod
    def _resolve_category(cls, value: Any) -> CategoryName:
        return CategoryName.resolve(value)

    @field_validator("transaction_date", "created_at")
    @classmethod
    def _normalize_dates(cls, value: datetime) -> datetime:
        return as_utc(value)


class Wallet(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    kind: WalletKind = WalletKind.OTHER
    source_identifier: str | None = None
    balance: Decimal = Decimal("0")
    initial_balance: Decimal = Decimal("0")
    is_income_source: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    balance_updated_at: datetime | None = None

    @field_validator("created_at", "balance_updated_at")
    @classmethod
    def _normalize_dates(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    def matches_source(self, source: str | None) -> bool:
        if not source or not self.source_identifier:
            return False
        return self.source_identifier.strip().lower() == source.strip().lower()


class ParsedTransactionInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_transfer_likely: bool = False
    suggested_source_type: WalletKind | None = None
    suggested_dest_type: WalletKind | None = None
    balance_snapshot: Decimal | None = None


class IncomingSms(BaseModel):
    text: str
    source: str
    received_at: datetime = Field(default_factory=utc_now)

    @field_validator("received_at")
    @classmethod
    def _normalize_received_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class CategorizationResult(BaseModel):
    category: CategoryName
    confidence: float  # 0.0 to 1.0
    source: str  # "memory_exact", "memory_fuzzy", "keywords", "default"
