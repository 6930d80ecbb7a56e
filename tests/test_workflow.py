import threading
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from sms_ledger.integration.stores import DuplicateWalletError, InMemoryWalletStore, StoreError
from sms_ledger.models import ParsedTransactionInfo, WalletKind
from sms_ledger.reconciliation.reconciler import ProposeWalletCreation, propose_for, reconcile
from sms_ledger.reconciliation.workflow import (
    ProposalRegistry,
    ProposalResolvedError,
    Resolution,
    WalletCreationWorkflow,
    WorkflowState,
)


@pytest.fixture
def store():
    return InMemoryWalletStore()


def test_first_message_from_new_source(store):
    action = reconcile(ParsedTransactionInfo(), "AirtelTigo_Money", store.list_wallets())
    assert isinstance(action, ProposeWalletCreation)
    assert action.source == "AirtelTigo_Money"

    workflow = WalletCreationWorkflow(action)
    assert workflow.state is WorkflowState.AWAITING_CONFIRMATION

    resolution = workflow.confirm(store, opening_balance=Decimal("0"), is_income_source=False)

    assert resolution is Resolution.CREATED
    assert workflow.state is WorkflowState.RESOLVED
    wallets = store.list_wallets()
    assert len(wallets) == 1
    assert wallets[0].source_identifier == "AirtelTigo_Money"
    assert wallets[0].kind == WalletKind.MOMO
    assert wallets[0].balance == Decimal("0")

    # A second attempt for the same source is rejected by the store.
    with pytest.raises(DuplicateWalletError):
        store.create_wallet("AirtelTigo_Money", WalletKind.MOMO, Decimal("0"), False)


def test_concurrent_confirmations_create_one_wallet(store):
    proposal = propose_for("AirtelTigo_Money")
    workflows = [WalletCreationWorkflow(proposal) for _ in range(2)]
    barrier = threading.Barrier(len(workflows))
    resolutions = []

    def confirm(workflow):
        barrier.wait()
        resolutions.append(workflow.confirm(store))

    threads = [threading.Thread(target=confirm, args=(wf,)) for wf in workflows]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(r.value for r in resolutions) == ["already_created", "created"]
    assert len(store.list_wallets()) == 1
    assert workflows[0].wallet.id == workflows[1].wallet.id


def test_confirm_overrides(store):
    workflow = WalletCreationWorkflow(propose_for("Zeepay"))
    workflow.confirm(store, kind=WalletKind.MOMO, name="Zeepay Wallet", is_income_source=True)

    wallet = store.get_wallet_by_source("Zeepay")
    assert wallet.kind == WalletKind.MOMO
    assert wallet.name == "Zeepay Wallet"
    assert wallet.is_income_source is True


def test_resolved_workflow_cannot_be_reused(store):
    workflow = WalletCreationWorkflow(propose_for("MTN_MoMo"))
    workflow.dismiss()
    with pytest.raises(ProposalResolvedError):
        workflow.confirm(store)
    with pytest.raises(ProposalResolvedError):
        workflow.dismiss()
    assert store.list_wallets() == []


def test_registry_reuses_open_workflow():
    registry = ProposalRegistry()
    first = registry.offer(propose_for("MTN_MoMo"))
    second = registry.offer(propose_for("mtn_momo"))

    assert first is second
    assert registry.pending() == [first]
    assert registry.get("MTN_MoMo") is first


def test_registry_confirm(store):
    registry = ProposalRegistry()
    registry.offer(propose_for("MTN_MoMo"))

    workflow = registry.confirm("MTN_MoMo", store, opening_balance=Decimal("15.00"))
    assert workflow.resolution is Resolution.CREATED
    assert workflow.wallet.balance == Decimal("15.00")
    assert registry.pending() == []

    with pytest.raises(KeyError):
        registry.confirm("MTN_MoMo", store)


def test_registry_dismissed_source_is_not_offered_again():
    registry = ProposalRegistry()
    registry.offer(propose_for("MTN_MoMo"))
    workflow = registry.dismiss("MTN_MoMo")

    assert workflow.resolution is Resolution.DISMISSED
    assert registry.offer(propose_for("MTN_MoMo")) is None
    with pytest.raises(KeyError):
        registry.dismiss("MTN_MoMo")


def test_registry_keeps_proposal_when_store_fails():
    failing_store = MagicMock()
    failing_store.get_wallet_by_source.return_value = None
    failing_store.create_wallet.side_effect = StoreError("disk full")

    registry = ProposalRegistry()
    registry.offer(propose_for("MTN_MoMo"))

    with pytest.raises(StoreError):
        registry.confirm("MTN_MoMo", failing_store)
    assert registry.get("MTN_MoMo") is not None


def test_wallet_created_elsewhere_resolves_as_already_created(store):
    registry = ProposalRegistry()
    registry.offer(propose_for("MTN_MoMo"))
    store.create_wallet("MTN_MoMo", WalletKind.MOMO, Decimal("0"), False)

    workflow = registry.confirm("MTN_MoMo", store)
    assert workflow.resolution is Resolution.ALREADY_CREATED
    assert len(store.list_wallets()) == 1


def test_confirm_without_balance_uses_parsed_snapshot(store):
    workflow = WalletCreationWorkflow(propose_for("Zeepay", Decimal("35.00")))
    assert workflow.confirm(store) is Resolution.CREATED
    assert workflow.wallet.balance == Decimal("35.00")
    assert workflow.wallet.initial_balance == Decimal("35.00")


def test_confirm_with_explicit_zero_balance(store):
    workflow = WalletCreationWorkflow(propose_for("Zeepay", Decimal("35.00")))
    workflow.confirm(store, opening_balance=Decimal("0"))

    assert store.get_wallet_by_source("Zeepay").balance == Decimal("0")


def test_registry_confirm_without_balance_or_snapshot(store):
    registry = ProposalRegistry()
    registry.offer(propose_for("MTN_MoMo"))

    workflow = registry.confirm("MTN_MoMo", store)
    assert workflow.wallet.balance == Decimal("0")
