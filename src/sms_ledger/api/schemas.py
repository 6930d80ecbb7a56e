from decimal import Decimal

from pydantic import BaseModel, Field

from sms_ledger.models import (
    CategorizationResult,
    CategoryName,
    IncomingSms,
    ParsedTransactionInfo,
    TransactionType,
    Wallet,
    WalletKind,
)


class ClassifyRequest(BaseModel):
    text: str


class SmsDetailsResponse(BaseModel):
    amount: Decimal | None = None
    type: TransactionType | None = None
    counterparty: str | None = None
    description: str


class ClassifyResponse(BaseModel):
    parsed: ParsedTransactionInfo
    details: SmsDetailsResponse
    category: CategorizationResult


class IngestRequest(BaseModel):
    messages: list[IncomingSms] = Field(min_length=1)


class CategorizeRequest(BaseModel):
    text: str
    transaction_type: TransactionType | None = None
    merchant: str | None = None


class CategoryInfo(BaseModel):
    name: CategoryName
    color: str


class LearnRequest(BaseModel):
    text: str
    category: CategoryName
    merchant: str | None = None


class UnmatchedSource(BaseModel):
    source: str
    count: int


class ProposalInfo(BaseModel):
    source: str
    suggested_kind: WalletKind
    suggested_name: str
    opening_balance: Decimal | None = None


class ConfirmProposalRequest(BaseModel):
    source: str
    opening_balance: Decimal | None = None
    is_income_source: bool = False
    kind: WalletKind | None = None
    name: str | None = None


class ConfirmProposalResponse(BaseModel):
    status: str
    wallet: Wallet | None = None


class DismissProposalRequest(BaseModel):
    source: str


class TransferRequest(BaseModel):
    transaction_id: str
    from_wallet_id: str
    to_wallet_id: str
