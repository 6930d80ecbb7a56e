from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from sms_ledger.integration.stores import (
    BalanceUpdateStatus,
    DuplicateWalletError,
    InMemoryTransactionStore,
    InMemoryWalletStore,
    StoreError,
    WalletNotFoundError,
)
from sms_ledger.models import Transaction, TransactionType, Wallet, WalletKind

T1 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
T2 = T1 + timedelta(minutes=5)


@pytest.fixture
def wallet_store(tmp_path):
    return InMemoryWalletStore(str(tmp_path / "wallets.json"))


def test_create_and_find_wallet(wallet_store):
    wallet = wallet_store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("50.00"), True)

    assert wallet.name == "MTN MoMo"
    assert wallet.balance == wallet.initial_balance == Decimal("50.00")
    assert wallet.is_income_source is True
    assert wallet_store.get_wallet_by_source(" mtn_momo").id == wallet.id
    assert wallet_store.get_wallet_by_source("GCBBank") is None


def test_duplicate_wallet(wallet_store):
    first = wallet_store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("0"), False)
    with pytest.raises(DuplicateWalletError) as exc_info:
        wallet_store.create_wallet("mtn_momo", WalletKind.MOMO, Decimal("0"), False)
    assert exc_info.value.existing.id == first.id
    assert len(wallet_store.list_wallets()) == 1


def test_add_wallet_rejects_tracked_source(wallet_store):
    wallet_store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("0"), False)
    with pytest.raises(DuplicateWalletError):
        wallet_store.add_wallet(Wallet(name="Mine", source_identifier="MTN_MoMo"))
    # Wallets without a source (cash) are always accepted.
    wallet_store.add_wallet(Wallet(name="Cash", kind=WalletKind.CASH))
    assert len(wallet_store.list_wallets()) == 2


def test_balance_compare_and_set(wallet_store):
    wallet = wallet_store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("0"), False)

    assert wallet_store.update_wallet_balance(wallet.id, Decimal("20"), T2) == BalanceUpdateStatus.APPLIED
    assert wallet_store.update_wallet_balance(wallet.id, Decimal("10"), T1) == BalanceUpdateStatus.CONFLICT
    assert wallet_store.update_wallet_balance(wallet.id, Decimal("30"), T2) == BalanceUpdateStatus.APPLIED

    stored = wallet_store.get_wallet_by_source("MTN_MoMo")
    assert stored.balance == Decimal("30")
    assert stored.balance_updated_at == T2


def test_balance_update_unknown_wallet(wallet_store):
    with pytest.raises(WalletNotFoundError):
        wallet_store.update_wallet_balance("missing", Decimal("1"), T1)


def test_returned_wallets_are_copies(wallet_store):
    wallet_store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("0"), False)
    wallet_store.list_wallets()[0].balance = Decimal("999")
    assert wallet_store.get_wallet_by_source("MTN_MoMo").balance == Decimal("0")


def test_wallets_persist(tmp_path):
    path = str(tmp_path / "wallets.json")
    store = InMemoryWalletStore(path)
    wallet = store.create_wallet("GCBBank", WalletKind.BANK, Decimal("12.50"), False)
    store.update_wallet_balance(wallet.id, Decimal("99.99"), T1)

    reloaded = InMemoryWalletStore(path).get_wallet_by_source("GCBBank")
    assert reloaded.id == wallet.id
    assert reloaded.balance == Decimal("99.99")
    assert reloaded.balance_updated_at == T1


def test_invalid_wallet_file(tmp_path):
    path = tmp_path / "wallets.json"
    path.write_text("not json", encoding="utf-8")
    assert InMemoryWalletStore(str(path)).list_wallets() == []


def _transaction():
    return Transaction(
        transaction_date=T1,
        amount=Decimal("20.00"),
        type=TransactionType.DEBIT,
        source="MTN_MoMo",
        description="Payment for GHS 20.00 to KFC",
        category="food & dining",
        raw_sms="Payment for GHS 20.00 to KFC",
    )


def test_transaction_store(tmp_path):
    path = str(tmp_path / "transactions.json")
    store = InMemoryTransactionStore(path)
    tx = _transaction()

    assert store.create_transaction(tx) == tx.id
    with pytest.raises(StoreError):
        store.create_transaction(tx)

    reloaded = InMemoryTransactionStore(path).list_transactions()
    assert [t.id for t in reloaded] == [tx.id]
    assert reloaded[0].amount == Decimal("20.00")
    assert reloaded[0].category.value == "Food & Dining"


def test_transaction_store_without_file():
    store = InMemoryTransactionStore()
    store.create_transaction(_transaction())
    assert len(store.list_transactions()) == 1


def test_transfer_between_moves_both_legs(wallet_store):
    momo = wallet_store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("100.00"), False)
    bank = wallet_store.create_wallet("GCBBank", WalletKind.BANK, Decimal("40.00"), False)
    wallet_store.update_wallet_balance(momo.id, Decimal("100.00"), T1)

    wallet_store.transfer_between(momo.id, bank.id, Decimal("25.50"))

    stored_momo = wallet_store.get_wallet_by_source("MTN_MoMo")
    assert stored_momo.balance == Decimal("74.50")
    assert stored_momo.balance_updated_at == T1
    assert wallet_store.get_wallet_by_source("GCBBank").balance == Decimal("65.50")


def test_transfer_between_unknown_wallet(wallet_store):
    momo = wallet_store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("100.00"), False)

    with pytest.raises(WalletNotFoundError):
        wallet_store.transfer_between(momo.id, "missing", Decimal("1"))
    assert wallet_store.get_wallet_by_source("MTN_MoMo").balance == Decimal("100.00")


def test_get_transaction():
    store = InMemoryTransactionStore()
    tx = _transaction()
    store.create_transaction(tx)

    assert store.get_transaction(tx.id) == tx
    assert store.get_transaction("missing") is None
