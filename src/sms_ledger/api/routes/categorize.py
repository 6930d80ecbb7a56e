import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends

from sms_ledger.api.dependencies import get_assigner
from sms_ledger.api.schemas import CategorizeRequest, CategoryInfo, LearnRequest
from sms_ledger.domain.categories import TAXONOMY
from sms_ledger.logger import get_logger
from sms_ledger.manager import CategoryAssigner
from sms_ledger.models import CategorizationResult

logger = get_logger(__name__)

router = APIRouter()


@router.post("/categorize", response_model=CategorizationResult)
async def categorize_text(
    req: CategorizeRequest,
    assigner: Annotated[CategoryAssigner, Depends(get_assigner)],
) -> CategorizationResult:
    return await asyncio.to_thread(
        assigner.categorize,
        req.text,
        transaction_type=req.transaction_type,
        merchant=req.merchant,
    )


@router.get("/categories", response_model=list[CategoryInfo])
async def get_categories() -> list[CategoryInfo]:
    return [CategoryInfo(name=config.name, color=config.color) for config in TAXONOMY]


@router.post("/learn")
async def learn_category(
    req: LearnRequest,
    assigner: Annotated[CategoryAssigner, Depends(get_assigner)],
) -> dict[str, str]:
    logger.info(
        "[CATEGORIZE] '%s' -> Category: '%s' (Source: manual)",
        req.merchant or req.text[:50],
        req.category.value,
    )
    await asyncio.to_thread(assigner.learn, req.text, req.category, merchant=req.merchant)
    return {"status": "success"}
