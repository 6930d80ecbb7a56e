import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sms_ledger.api.routes import categorize, sms, wallets, webhook
from sms_ledger.core import settings
from sms_ledger.integration.stores import InMemoryTransactionStore, InMemoryWalletStore
from sms_ledger.logger import get_logger, setup_logging
from sms_ledger.manager import CategoryAssigner
from sms_ledger.parsing.message import MessageClassifier
from sms_ledger.reconciliation.workflow import ProposalRegistry
from sms_ledger.services.ingestion import IngestionPipeline

logger = get_logger(__name__)

WALLETS_FILENAME = "wallets.json"
TRANSACTIONS_FILENAME = "transactions.json"


def create_app(data_dir: str | None = None) -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        base_dir = data_dir or settings.get_data_dir()
        settings.ensure_dir(base_dir)

        if settings.get_persist_stores():
            wallet_store = InMemoryWalletStore(os.path.join(base_dir, WALLETS_FILENAME))
            transaction_store = InMemoryTransactionStore(os.path.join(base_dir, TRANSACTIONS_FILENAME))
        else:
            logger.info("PERSIST_STORES disabled. Wallets and transactions are kept in memory only.")
            wallet_store = InMemoryWalletStore()
            transaction_store = InMemoryTransactionStore()

        classifier = MessageClassifier()
        assigner = CategoryAssigner(
            memory_threshold=settings.get_memory_threshold(),
            data_dir=base_dir,
        )
        proposals = ProposalRegistry()
        pipeline = IngestionPipeline(
            classifier=classifier,
            assigner=assigner,
            wallets=wallet_store,
            transactions=transaction_store,
            proposals=proposals,
            conflict_retries=settings.get_balance_conflict_retries(),
        )

        app.state.classifier = classifier
        app.state.assigner = assigner
        app.state.wallets = wallet_store
        app.state.transactions = transaction_store
        app.state.proposals = proposals
        app.state.pipeline = pipeline

        logger.info("Services initialized (pattern library %s).", classifier.library.version)
        yield
        logger.info("Service shutting down.")

    app = FastAPI(title="SMS Ledger", lifespan=lifespan)

    app.include_router(sms.router)
    app.include_router(webhook.router)
    app.include_router(categorize.router)
    app.include_router(wallets.router)

    return app


app = create_app()
