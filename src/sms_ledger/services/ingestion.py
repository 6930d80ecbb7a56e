from collections.abc import Iterable

from pydantic import BaseModel

from sms_ledger.integration.stores import (
    BalanceUpdateStatus,
    TransactionNotFoundError,
    TransactionStore,
    WalletNotFoundError,
    WalletStore,
)
from sms_ledger.logger import get_logger
from sms_ledger.manager import CategoryAssigner
from sms_ledger.models import (
    CategorizationResult,
    IncomingSms,
    ParsedTransactionInfo,
    Transaction,
    TransactionType,
)
from sms_ledger.parsing.message import MessageClassifier
from sms_ledger.parsing.sms import SmsDetails, extract_details
from sms_ledger.reconciliation.reconciler import (
    ApplyTransfer,
    NoAction,
    ProposeWalletCreation,
    ReconciliationAction,
    RejectTransfer,
    TransferDecision,
    UpdateBalance,
    plan_transfer,
    reconcile,
    suggest_transfer,
)
from sms_ledger.reconciliation.workflow import ProposalRegistry

logger = get_logger(__name__)


class IngestionResult(BaseModel):
    message: IncomingSms
    parsed: ParsedTransactionInfo | None = None
    transaction: Transaction | None = None
    action: ReconciliationAction | None = None
    balance_update: BalanceUpdateStatus | None = None
    proposal_open: bool = False
    suggested_transfer: ApplyTransfer | None = None
    skipped: str | None = None
    error: str | None = None


class IngestionPipeline:
    """
    Turns incoming SMS into stored transactions and wallet updates.

    This is the consuming layer around the pure classifier, assigner and
    reconciler: it persists transactions, applies balance updates through the
    wallet store and parks wallet proposals in the registry for the user.
    """

    def __init__(
        self,
        classifier: MessageClassifier,
        assigner: CategoryAssigner,
        wallets: WalletStore,
        transactions: TransactionStore,
        proposals: ProposalRegistry,
        conflict_retries: int = 3,
    ) -> None:
        self.classifier = classifier
        self.assigner = assigner
        self.wallets = wallets
        self.transactions = transactions
        self.proposals = proposals
        self.conflict_retries = conflict_retries

    def preview(self, text: str) -> tuple[ParsedTransactionInfo, SmsDetails, CategorizationResult]:
        """Classify and categorize a message without storing anything."""
        parsed = self.classifier.classify(text)
        details = extract_details(text, self.classifier.library)
        categorization = self.assigner.categorize(
            details.description,
            transaction_type=details.type,
            merchant=details.counterparty,
        )
        return parsed, details, categorization

    def ingest_batch(self, messages: Iterable[IncomingSms]) -> list[IngestionResult]:
        # Oldest first so last-write-wins balance updates don't depend on arrival order.
        ordered = sorted(messages, key=lambda sms: sms.received_at)
        results = [self.ingest(sms) for sms in ordered]
        logger.info(
            "[INGEST] Batch done: %d messages, %d transactions, %d skipped, %d errors.",
            len(results),
            sum(1 for r in results if r.transaction),
            sum(1 for r in results if r.skipped),
            sum(1 for r in results if r.error),
        )
        return results

    def ingest(self, sms: IncomingSms) -> IngestionResult:
        result = IngestionResult(message=sms)
        try:
            self._ingest(sms, result)
        except Exception as exc:
            logger.exception("[INGEST] Failed to process message from '%s'.", sms.source)
            result.error = f"{type(exc).__name__}: {exc}"
        return result

    def _ingest(self, sms: IncomingSms, result: IngestionResult) -> None:
        parsed = self.classifier.classify(sms.text)
        result.parsed = parsed

        details = extract_details(sms.text, self.classifier.library)
        if details.amount is None:
            logger.info("[INGEST] No amount in message from '%s'; no transaction recorded.", sms.source)
            result.skipped = "no amount found"
        else:
            result.transaction = self._record(sms, parsed, details)

        # Balance-only alerts still carry a snapshot and a sender.
        action = reconcile(parsed, sms.source, self.wallets.list_wallets(), as_of=sms.received_at)
        result.action, result.balance_update = self._apply(action, parsed, sms)

        if isinstance(result.action, ProposeWalletCreation):
            result.proposal_open = self.proposals.offer(result.action) is not None

        if result.transaction is not None and parsed.is_transfer_likely:
            result.suggested_transfer = suggest_transfer(parsed, result.transaction, self.wallets.list_wallets())

    def _record(self, sms: IncomingSms, parsed: ParsedTransactionInfo, details: SmsDetails) -> Transaction:
        tx_type = details.type
        if tx_type is None:
            logger.debug("[INGEST] No direction cue in message from '%s'; assuming debit.", sms.source)
            tx_type = TransactionType.DEBIT

        category = self.assigner.assign(
            details.description,
            transaction_type=tx_type,
            merchant=details.counterparty,
        )

        transaction = Transaction(
            transaction_date=sms.received_at,
            amount=details.amount,
            type=tx_type,
            source=sms.source,
            description=details.description,
            balance=parsed.balance_snapshot,
            category=category,
            raw_sms=sms.text,
        )
        self.transactions.create_transaction(transaction)
        logger.info(
            "[INGEST] %s %s %s from '%s' -> %s",
            transaction.id,
            transaction.type.value,
            transaction.amount,
            transaction.source,
            transaction.category.value,
        )
        return transaction

    def apply_transfer(self, transaction_id: str, from_wallet_id: str, to_wallet_id: str) -> TransferDecision:
        """
        Move a stored transaction's amount between two of the user's wallets.

        Raises:
            TransactionNotFoundError: no stored transaction has that id
            WalletNotFoundError: either wallet is unknown
        """
        transaction = self.transactions.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)

        decision = plan_transfer(transaction, from_wallet_id, to_wallet_id)
        if isinstance(decision, RejectTransfer):
            logger.warning("[TRANSFER] Rejected transfer for %s: %s.", transaction_id, decision.reason)
            return decision

        self.wallets.transfer_between(decision.from_wallet_id, decision.to_wallet_id, decision.amount)
        logger.info(
            "[TRANSFER] %s moved %s from wallet %s to wallet %s.",
            transaction_id,
            decision.amount,
            decision.from_wallet_id,
            decision.to_wallet_id,
        )
        return decision

    def _apply(
        self,
        action: NoAction | ProposeWalletCreation | UpdateBalance,
        parsed: ParsedTransactionInfo,
        sms: IncomingSms,
    ) -> tuple[NoAction | ProposeWalletCreation | UpdateBalance, BalanceUpdateStatus | None]:
        attempts = 0
        while isinstance(action, UpdateBalance):
            try:
                status = self.wallets.update_wallet_balance(action.wallet_id, action.new_balance, action.as_of)
            except WalletNotFoundError:
                logger.warning("[RECONCILE] Wallet %s vanished; re-reconciling.", action.wallet_id)
                status = BalanceUpdateStatus.CONFLICT

            if status is BalanceUpdateStatus.APPLIED:
                return action, status

            attempts += 1
            if attempts > self.conflict_retries:
                logger.warning(
                    "[RECONCILE] Balance update for wallet %s still conflicting after %d attempts.",
                    action.wallet_id,
                    attempts,
                )
                return action, BalanceUpdateStatus.CONFLICT

            # Another write got there first: decide again from fresh state.
            action = reconcile(parsed, sms.source, self.wallets.list_wallets(), as_of=sms.received_at)

        return action, None
