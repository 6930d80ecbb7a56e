import threading
from decimal import Decimal
from enum import Enum

from sms_ledger.domain.sources import source_key
from sms_ledger.integration.stores import DuplicateWalletError, WalletStore
from sms_ledger.logger import get_logger
from sms_ledger.models import Wallet, WalletKind
from sms_ledger.reconciliation.reconciler import ProposeWalletCreation

logger = get_logger(__name__)


class WorkflowState(str, Enum):
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    RESOLVED = "resolved"


class Resolution(str, Enum):
    CREATED = "created"
    ALREADY_CREATED = "already_created"
    DISMISSED = "dismissed"


class ProposalResolvedError(RuntimeError):
    pass


class WalletCreationWorkflow:
    """One wallet proposal, from the prompt shown to the user to its single resolution."""

    def __init__(self, proposal: ProposeWalletCreation):
        self.proposal = proposal
        self.state = WorkflowState.AWAITING_CONFIRMATION
        self.resolution: Resolution | None = None
        self.wallet: Wallet | None = None

    @property
    def source(self) -> str:
        return self.proposal.source

    def _resolve(self, resolution: Resolution, wallet: Wallet | None = None) -> Resolution:
        self.state = WorkflowState.RESOLVED
        self.resolution = resolution
        self.wallet = wallet
        return resolution

    def _ensure_open(self) -> None:
        if self.state is WorkflowState.RESOLVED:
            raise ProposalResolvedError(f"Proposal for '{self.source}' already resolved ({self.resolution})")

    def confirm(
        self,
        store: WalletStore,
        opening_balance: Decimal | None = None,
        is_income_source: bool = False,
        kind: WalletKind | None = None,
        name: str | None = None,
    ) -> Resolution:
        self._ensure_open()

        existing = store.get_wallet_by_source(self.source)
        if existing:
            logger.info("[WALLET] Source '%s' got a wallet before confirmation.", self.source)
            return self._resolve(Resolution.ALREADY_CREATED, existing)

        if opening_balance is None:
            # Fall back to the snapshot parsed from the first message.
            opening_balance = self.proposal.opening_balance or Decimal("0")

        try:
            wallet = store.create_wallet(
                self.source,
                kind or self.proposal.suggested_kind,
                opening_balance,
                is_income_source,
                name=name or self.proposal.suggested_name,
            )
        except DuplicateWalletError as exc:
            logger.info("[WALLET] Concurrent creation for '%s'; keeping the existing wallet.", self.source)
            return self._resolve(Resolution.ALREADY_CREATED, exc.existing)

        return self._resolve(Resolution.CREATED, wallet)

    def dismiss(self) -> Resolution:
        self._ensure_open()
        return self._resolve(Resolution.DISMISSED)


class ProposalRegistry:
    """
    Open wallet proposals for one session.

    Re-proposing a source that already has an open workflow returns that
    workflow. A source dismissed in this session is not offered again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._open: dict[str, WalletCreationWorkflow] = {}
        self._dismissed: set[str] = set()

    def offer(self, proposal: ProposeWalletCreation) -> WalletCreationWorkflow | None:
        key = source_key(proposal.source)
        with self._lock:
            if key in self._dismissed:
                return None
            workflow = self._open.get(key)
            if workflow is None:
                workflow = WalletCreationWorkflow(proposal)
                self._open[key] = workflow
                logger.info("[WALLET] New source '%s' awaiting confirmation.", proposal.source)
            return workflow

    def get(self, source: str) -> WalletCreationWorkflow | None:
        with self._lock:
            return self._open.get(source_key(source))

    def pending(self) -> list[WalletCreationWorkflow]:
        with self._lock:
            return list(self._open.values())

    def _take(self, source: str) -> WalletCreationWorkflow:
        workflow = self._open.pop(source_key(source), None)
        if workflow is None:
            raise KeyError(source)
        return workflow

    def confirm(
        self,
        source: str,
        store: WalletStore,
        opening_balance: Decimal | None = None,
        is_income_source: bool = False,
        kind: WalletKind | None = None,
        name: str | None = None,
    ) -> WalletCreationWorkflow:
        with self._lock:
            workflow = self._take(source)
        try:
            workflow.confirm(
                store,
                opening_balance=opening_balance,
                is_income_source=is_income_source,
                kind=kind,
                name=name,
            )
        except Exception:
            # Storage failed before a resolution; keep the proposal open.
            if workflow.state is WorkflowState.AWAITING_CONFIRMATION:
                with self._lock:
                    self._open.setdefault(source_key(source), workflow)
            raise
        return workflow

    def dismiss(self, source: str) -> WalletCreationWorkflow:
        with self._lock:
            workflow = self._take(source)
            self._dismissed.add(source_key(source))
        workflow.dismiss()
        return workflow
