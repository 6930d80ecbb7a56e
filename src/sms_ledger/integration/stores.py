"""
Storage collaborators for wallets and transactions.

``WalletStore`` and ``TransactionStore`` are the interfaces the pipeline talks
to. The in-memory implementations below are the reference behaviour: every
write happens under one lock, so ``update_wallet_balance`` is a single
compare-and-set on the wallet's ``balance_updated_at``, and ``create_wallet``
refuses a second wallet for the same source.
"""

import json
import os
import threading
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol

from sms_ledger.domain.sources import display_name
from sms_ledger.domain.timefmt import as_utc
from sms_ledger.logger import get_logger
from sms_ledger.models import Transaction, Wallet, WalletKind

logger = get_logger(__name__)


class BalanceUpdateStatus(str, Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"


class StoreError(Exception):
    pass


class DuplicateWalletError(StoreError):
    def __init__(self, existing: Wallet):
        super().__init__(f"A wallet already tracks source '{existing.source_identifier}'")
        self.existing = existing


class WalletNotFoundError(StoreError):
    def __init__(self, wallet_id: str):
        super().__init__(f"Wallet not found: {wallet_id}")
        self.wallet_id = wallet_id


class TransactionNotFoundError(StoreError):
    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class WalletStore(Protocol):
    def list_wallets(self) -> list[Wallet]: ...

    def get_wallet_by_source(self, source: str) -> Wallet | None: ...

    def create_wallet(
        self,
        source: str,
        kind: WalletKind,
        opening_balance: Decimal,
        is_income_source: bool,
        name: str | None = None,
    ) -> Wallet: ...

    def update_wallet_balance(
        self, wallet_id: str, balance: Decimal, as_of: datetime
    ) -> BalanceUpdateStatus: ...

    def transfer_between(self, from_wallet_id: str, to_wallet_id: str, amount: Decimal) -> None: ...


class TransactionStore(Protocol):
    def create_transaction(self, transaction: Transaction) -> str: ...

    def get_transaction(self, transaction_id: str) -> Transaction | None: ...

    def list_transactions(self) -> list[Transaction]: ...


class InMemoryWalletStore:
    def __init__(self, data_path: str | None = None):
        self.data_path = data_path
        self._lock = threading.Lock()
        self._wallets: dict[str, Wallet] = {}
        self.load()

    def load(self) -> None:
        if not self.data_path or not os.path.exists(self.data_path):
            return
        try:
            with open(self.data_path, encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError:
            logger.warning("[WALLET] %s is not valid JSON; starting empty.", self.data_path)
            return
        wallets = [Wallet.model_validate(item) for item in raw]
        self._wallets = {wallet.id: wallet for wallet in wallets}

    def _save(self) -> None:
        if not self.data_path:
            return
        with open(self.data_path, "w", encoding="utf-8") as f:
            json.dump([w.model_dump(mode="json") for w in self._wallets.values()], f, indent=2)

    def _find_by_source(self, source: str) -> Wallet | None:
        for wallet in self._wallets.values():
            if wallet.matches_source(source):
                return wallet
        return None

    def list_wallets(self) -> list[Wallet]:
        with self._lock:
            return [w.model_copy() for w in self._wallets.values()]

    def get_wallet_by_source(self, source: str) -> Wallet | None:
        with self._lock:
            wallet = self._find_by_source(source)
            return wallet.model_copy() if wallet else None

    def add_wallet(self, wallet: Wallet) -> Wallet:
        """Register a wallet created outside the SMS flow (onboarding, cash wallets)."""
        with self._lock:
            if wallet.source_identifier:
                existing = self._find_by_source(wallet.source_identifier)
                if existing:
                    raise DuplicateWalletError(existing.model_copy())
            self._wallets[wallet.id] = wallet.model_copy()
            self._save()
            return wallet.model_copy()

    def create_wallet(
        self,
        source: str,
        kind: WalletKind,
        opening_balance: Decimal,
        is_income_source: bool,
        name: str | None = None,
    ) -> Wallet:
        with self._lock:
            existing = self._find_by_source(source)
            if existing:
                raise DuplicateWalletError(existing.model_copy())
            wallet = Wallet(
                name=name or display_name(source),
                kind=kind,
                source_identifier=source.strip(),
                balance=opening_balance,
                initial_balance=opening_balance,
                is_income_source=is_income_source,
            )
            self._wallets[wallet.id] = wallet
            self._save()
        logger.info("[WALLET] Created wallet %s for source '%s'.", wallet.id, source)
        return wallet.model_copy()

    def update_wallet_balance(
        self, wallet_id: str, balance: Decimal, as_of: datetime
    ) -> BalanceUpdateStatus:
        as_of = as_utc(as_of)
        with self._lock:
            wallet = self._wallets.get(wallet_id)
            if wallet is None:
                raise WalletNotFoundError(wallet_id)
            if wallet.balance_updated_at is not None and wallet.balance_updated_at > as_of:
                return BalanceUpdateStatus.CONFLICT
            wallet.balance = balance
            wallet.balance_updated_at = as_of
            self._save()
        return BalanceUpdateStatus.APPLIED

    def transfer_between(self, from_wallet_id: str, to_wallet_id: str, amount: Decimal) -> None:
        # Both legs move under one lock; balance_updated_at stays tied to SMS snapshots.
        with self._lock:
            source = self._wallets.get(from_wallet_id)
            if source is None:
                raise WalletNotFoundError(from_wallet_id)
            dest = self._wallets.get(to_wallet_id)
            if dest is None:
                raise WalletNotFoundError(to_wallet_id)
            source.balance -= amount
            dest.balance += amount
            self._save()


class InMemoryTransactionStore:
    def __init__(self, data_path: str | None = None):
        self.data_path = data_path
        self._lock = threading.Lock()
        self._transactions: dict[str, Transaction] = {}
        self.load()

    def load(self) -> None:
        if not self.data_path or not os.path.exists(self.data_path):
            return
        try:
            with open(self.data_path, encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError:
            logger.warning("[INGEST] %s is not valid JSON; starting empty.", self.data_path)
            return
        transactions = [Transaction.model_validate(item) for item in raw]
        self._transactions = {tx.id: tx for tx in transactions}

    def _save(self) -> None:
        if not self.data_path:
            return
        with open(self.data_path, "w", encoding="utf-8") as f:
            json.dump([tx.model_dump(mode="json") for tx in self._transactions.values()], f, indent=2)

    def create_transaction(self, transaction: Transaction) -> str:
        with self._lock:
            if transaction.id in self._transactions:
                raise StoreError(f"Transaction already stored: {transaction.id}")
            self._transactions[transaction.id] = transaction
            self._save()
        return transaction.id

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        with self._lock:
            return self._transactions.get(transaction_id)

    def list_transactions(self) -> list[Transaction]:
        with self._lock:
            return list(self._transactions.values())
