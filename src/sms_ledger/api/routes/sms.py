import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from sms_ledger.api.dependencies import get_pipeline
from sms_ledger.api.schemas import (
    ClassifyRequest,
    ClassifyResponse,
    IngestRequest,
    SmsDetailsResponse,
)
from sms_ledger.services.ingestion import IngestionPipeline, IngestionResult

router = APIRouter(prefix="/sms")


@router.post("/classify", response_model=ClassifyResponse)
async def classify_sms(
    req: ClassifyRequest,
    pipeline: Annotated[IngestionPipeline, Depends(get_pipeline)],
) -> ClassifyResponse:
    parsed, details, category = await asyncio.to_thread(pipeline.preview, req.text)
    return ClassifyResponse(
        parsed=parsed,
        details=SmsDetailsResponse(
            amount=details.amount,
            type=details.type,
            counterparty=details.counterparty,
            description=details.description,
        ),
        category=category,
    )


@router.post("/ingest", response_model=list[IngestionResult])
async def ingest_sms(
    req: IngestRequest,
    pipeline: Annotated[IngestionPipeline, Depends(get_pipeline)],
) -> list[IngestionResult]:
    return await asyncio.to_thread(pipeline.ingest_batch, req.messages)
