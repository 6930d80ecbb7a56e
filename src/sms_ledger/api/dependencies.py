from fastapi import HTTPException, Request

from sms_ledger.integration.stores import TransactionStore, WalletStore
from sms_ledger.manager import CategoryAssigner
from sms_ledger.parsing.message import MessageClassifier
from sms_ledger.reconciliation.workflow import ProposalRegistry
from sms_ledger.services.ingestion import IngestionPipeline


def _require(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return value


def get_pipeline(request: Request) -> IngestionPipeline:
    return _require(request, "pipeline")


def get_classifier(request: Request) -> MessageClassifier:
    return _require(request, "classifier")


def get_assigner(request: Request) -> CategoryAssigner:
    return _require(request, "assigner")


def get_wallet_store(request: Request) -> WalletStore:
    return _require(request, "wallets")


def get_transaction_store(request: Request) -> TransactionStore:
    return _require(request, "transactions")


def get_proposals(request: Request) -> ProposalRegistry:
    return _require(request, "proposals")
