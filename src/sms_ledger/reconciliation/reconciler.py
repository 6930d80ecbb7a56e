"""
Wallet reconciliation decisions.

``reconcile`` looks at one classified message and the wallets the user already
has, and returns what should happen to them. It never writes anything: the
caller applies an ``UpdateBalance`` through the wallet store and routes a
``ProposeWalletCreation`` to the user for confirmation. Transfers between two
of the user's own wallets are planned the same way by ``plan_transfer``.
"""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from sms_ledger.domain.sources import display_name, infer_wallet_kind
from sms_ledger.domain.timefmt import as_utc, utc_now
from sms_ledger.logger import get_logger
from sms_ledger.models import ParsedTransactionInfo, Transaction, TransactionType, Wallet, WalletKind

logger = get_logger(__name__)

NoActionReason = Literal["source_known", "stale_snapshot", "no_source"]


class NoAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["none"] = "none"
    reason: NoActionReason = "source_known"
    wallet_id: str | None = None


class ProposeWalletCreation(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["propose_wallet"] = "propose_wallet"
    source: str
    suggested_kind: WalletKind = WalletKind.OTHER
    suggested_name: str
    opening_balance: Decimal | None = None


class UpdateBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["update_balance"] = "update_balance"
    wallet_id: str
    new_balance: Decimal
    as_of: datetime


ReconciliationAction = Annotated[
    Union[NoAction, ProposeWalletCreation, UpdateBalance],
    Field(discriminator="action"),
]


def find_wallet(source: str, wallets: Iterable[Wallet]) -> Wallet | None:
    for wallet in wallets:
        if wallet.matches_source(source):
            return wallet
    return None


def propose_for(source: str, opening_balance: Decimal | None = None) -> ProposeWalletCreation:
    return ProposeWalletCreation(
        source=source.strip(),
        suggested_kind=infer_wallet_kind(source),
        suggested_name=display_name(source),
        opening_balance=opening_balance,
    )


def reconcile(
    parsed_info: ParsedTransactionInfo,
    current_source: str | None,
    known_wallets: Iterable[Wallet],
    as_of: datetime | None = None,
) -> NoAction | ProposeWalletCreation | UpdateBalance:
    """
    Decide the wallet-level consequence of one classified message.

    Args:
        parsed_info: Classifier output for the message
        current_source: Sender label of the message (e.g. "MTN_MoMo")
        known_wallets: Wallets currently on record
        as_of: Transaction date of the message; defaults to now

    Returns:
        UpdateBalance when the source is tracked and a fresh snapshot is present,
        ProposeWalletCreation when no wallet tracks the source,
        NoAction otherwise
    """
    if not current_source or not current_source.strip():
        return NoAction(reason="no_source")

    wallet = find_wallet(current_source, known_wallets)
    if wallet is None:
        logger.debug("[RECONCILE] No wallet for source '%s'; proposing one.", current_source)
        return propose_for(current_source, parsed_info.balance_snapshot)

    snapshot = parsed_info.balance_snapshot
    if snapshot is None:
        return NoAction(reason="source_known", wallet_id=wallet.id)

    as_of = as_utc(as_of) if as_of is not None else utc_now()

    if wallet.balance_updated_at is not None and as_of < wallet.balance_updated_at:
        logger.info(
            "[RECONCILE] Ignoring stale snapshot for wallet %s (%s older than %s).",
            wallet.id,
            as_of.isoformat(),
            wallet.balance_updated_at.isoformat(),
        )
        return NoAction(reason="stale_snapshot", wallet_id=wallet.id)

    return UpdateBalance(wallet_id=wallet.id, new_balance=snapshot, as_of=as_of)


class ApplyTransfer(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["apply_transfer"] = "apply_transfer"
    transaction_id: str
    from_wallet_id: str
    to_wallet_id: str
    amount: Decimal


class RejectTransfer(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["reject_transfer"] = "reject_transfer"
    transaction_id: str
    reason: Literal["non_positive_amount", "same_wallet"]


TransferDecision = Annotated[
    Union[ApplyTransfer, RejectTransfer],
    Field(discriminator="action"),
]


def plan_transfer(
    transaction: Transaction,
    from_wallet_id: str,
    to_wallet_id: str,
) -> ApplyTransfer | RejectTransfer:
    """Decide whether ``transaction`` can move money between two of the user's own wallets."""
    amount = abs(transaction.amount)
    if amount <= 0:
        return RejectTransfer(transaction_id=transaction.id, reason="non_positive_amount")
    if from_wallet_id == to_wallet_id:
        return RejectTransfer(transaction_id=transaction.id, reason="same_wallet")
    return ApplyTransfer(
        transaction_id=transaction.id,
        from_wallet_id=from_wallet_id,
        to_wallet_id=to_wallet_id,
        amount=amount,
    )


def suggest_transfer(
    parsed_info: ParsedTransactionInfo,
    transaction: Transaction,
    known_wallets: Iterable[Wallet],
) -> ApplyTransfer | None:
    """
    Pair the message's own wallet with the one wallet of the other suggested kind.

    A credit lands in the sender's wallet, a debit leaves it. Returns None when
    the route is unknown, the sender has no wallet, or the counterpart kind
    matches zero or several wallets.
    """
    source_kind = parsed_info.suggested_source_type
    dest_kind = parsed_info.suggested_dest_type
    if source_kind is None or dest_kind is None:
        return None

    wallets = [w for w in known_wallets if w.is_active]
    own = find_wallet(transaction.source, wallets)
    if own is None:
        return None

    incoming = transaction.type == TransactionType.CREDIT
    counterpart_kind = source_kind if incoming else dest_kind
    candidates = [w for w in wallets if w.kind == counterpart_kind and w.id != own.id]
    if len(candidates) != 1:
        logger.debug(
            "[TRANSFER] %d %s wallets could pair with %s; not suggesting.",
            len(candidates),
            counterpart_kind.value,
            own.id,
        )
        return None

    other = candidates[0]
    from_id, to_id = (other.id, own.id) if incoming else (own.id, other.id)
    decision = plan_transfer(transaction, from_id, to_id)
    return decision if isinstance(decision, ApplyTransfer) else None


def unmatched_sources(
    transactions: Iterable[Transaction],
    wallets: Iterable[Wallet],
) -> list[tuple[str, int]]:
    """Sources that have transactions but no wallet, most frequent first."""
    known = list(wallets)
    counts: Counter[str] = Counter()
    for tx in transactions:
        if tx.source and find_wallet(tx.source, known) is None:
            counts[tx.source] += 1
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))
