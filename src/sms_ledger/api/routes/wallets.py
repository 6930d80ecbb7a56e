import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from sms_ledger.api.dependencies import (
    get_pipeline,
    get_proposals,
    get_transaction_store,
    get_wallet_store,
)
from sms_ledger.api.schemas import (
    ConfirmProposalRequest,
    ConfirmProposalResponse,
    DismissProposalRequest,
    ProposalInfo,
    TransferRequest,
    UnmatchedSource,
)
from sms_ledger.integration.stores import (
    TransactionNotFoundError,
    TransactionStore,
    WalletNotFoundError,
    WalletStore,
)
from sms_ledger.logger import get_logger
from sms_ledger.models import Wallet
from sms_ledger.reconciliation.reconciler import (
    ApplyTransfer,
    RejectTransfer,
    unmatched_sources,
)
from sms_ledger.reconciliation.workflow import ProposalRegistry
from sms_ledger.services.ingestion import IngestionPipeline

logger = get_logger(__name__)

router = APIRouter(prefix="/wallets")


@router.get("", response_model=list[Wallet])
async def list_wallets(
    wallets: Annotated[WalletStore, Depends(get_wallet_store)],
) -> list[Wallet]:
    return await asyncio.to_thread(wallets.list_wallets)


@router.get("/unmatched-sources", response_model=list[UnmatchedSource])
async def list_unmatched_sources(
    wallets: Annotated[WalletStore, Depends(get_wallet_store)],
    transactions: Annotated[TransactionStore, Depends(get_transaction_store)],
) -> list[UnmatchedSource]:
    counts = await asyncio.to_thread(
        lambda: unmatched_sources(transactions.list_transactions(), wallets.list_wallets())
    )
    return [UnmatchedSource(source=source, count=count) for source, count in counts]


@router.get("/proposals", response_model=list[ProposalInfo])
async def list_proposals(
    proposals: Annotated[ProposalRegistry, Depends(get_proposals)],
) -> list[ProposalInfo]:
    return [ProposalInfo(**workflow.proposal.model_dump(exclude={"action"})) for workflow in proposals.pending()]


@router.post("/proposals/confirm", response_model=ConfirmProposalResponse)
async def confirm_proposal(
    req: ConfirmProposalRequest,
    proposals: Annotated[ProposalRegistry, Depends(get_proposals)],
    wallets: Annotated[WalletStore, Depends(get_wallet_store)],
) -> ConfirmProposalResponse:
    try:
        workflow = await asyncio.to_thread(
            proposals.confirm,
            req.source,
            wallets,
            opening_balance=req.opening_balance,
            is_income_source=req.is_income_source,
            kind=req.kind,
            name=req.name,
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"No open proposal for '{req.source}'") from exc

    logger.info("[WALLET] Proposal for '%s' resolved: %s.", req.source, workflow.resolution.value)
    return ConfirmProposalResponse(status=workflow.resolution.value, wallet=workflow.wallet)


@router.post("/proposals/dismiss")
async def dismiss_proposal(
    req: DismissProposalRequest,
    proposals: Annotated[ProposalRegistry, Depends(get_proposals)],
) -> dict[str, str]:
    try:
        workflow = proposals.dismiss(req.source)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"No open proposal for '{req.source}'") from exc

    logger.info("[WALLET] Proposal for '%s' dismissed.", req.source)
    return {"status": workflow.resolution.value}


@router.post("/transfers", response_model=ApplyTransfer)
async def apply_transfer(
    req: TransferRequest,
    pipeline: Annotated[IngestionPipeline, Depends(get_pipeline)],
) -> ApplyTransfer:
    try:
        decision = await asyncio.to_thread(
            pipeline.apply_transfer,
            req.transaction_id,
            req.from_wallet_id,
            req.to_wallet_id,
        )
    except (TransactionNotFoundError, WalletNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    if isinstance(decision, RejectTransfer):
        raise HTTPException(status_code=422, detail=decision.reason)
    return decision
