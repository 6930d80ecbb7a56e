import asyncio
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from sms_ledger.api.dependencies import get_pipeline
from sms_ledger.integration.stores import BalanceUpdateStatus
from sms_ledger.logger import get_logger
from sms_ledger.models import IncomingSms
from sms_ledger.services.ingestion import IngestionPipeline

logger = get_logger(__name__)

router = APIRouter()

_TEXT_KEYS = ("message", "body", "text", "sms")
_SOURCE_KEYS = ("source", "sender", "from")
_TIME_KEYS = ("received_at", "timestamp", "date")


def _iter_webhook_containers(payload: dict[str, Any]) -> list[dict[str, Any]]:
    # Forwarding apps nest the message under different envelopes.
    containers = [payload]
    for key in ("data", "payload", "sms", "message"):
        value = payload.get(key)
        if isinstance(value, dict):
            containers.append(value)
    return containers


def _first_value(containers: list[dict[str, Any]], keys: tuple[str, ...]) -> Any:
    for container in containers:
        for key in keys:
            value = container.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return value
    return None


def _parse_received_at(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        # Android forwarders send epoch milliseconds.
        seconds = value / 1000 if value > 10**11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("[WEBHOOK] Timestamp %s out of range; using receive time.", value)
            return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("[WEBHOOK] Unparseable timestamp '%s'; using receive time.", value)
        return None


def parse_webhook_sms(payload: Any) -> IncomingSms | None:
    if not isinstance(payload, dict):
        return None
    containers = _iter_webhook_containers(payload)
    text = _first_value(containers, _TEXT_KEYS)
    source = _first_value(containers, _SOURCE_KEYS)
    if not isinstance(text, str) or source is None:
        return None

    fields: dict[str, Any] = {"text": text, "source": str(source)}
    received_at = _parse_received_at(_first_value(containers, _TIME_KEYS))
    if received_at is not None:
        fields["received_at"] = received_at
    try:
        return IncomingSms(**fields)
    except ValidationError:
        logger.warning("[WEBHOOK] Payload fields failed validation.")
        return None


@router.post("/webhook/sms")
async def sms_webhook(
    request: Request,
    pipeline: Annotated[IngestionPipeline, Depends(get_pipeline)],
) -> dict[str, Any]:
    try:
        payload = await request.json()
    except Exception as exc:
        logger.warning("[WEBHOOK] Received invalid JSON payload.")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc

    if not isinstance(payload, dict):
        logger.warning("[WEBHOOK] Unexpected payload type: %s.", type(payload).__name__)
        return {"status": "ignored", "reason": "unexpected payload"}

    sms = parse_webhook_sms(payload)
    if sms is None:
        logger.warning("[WEBHOOK] Missing message text or sender; skipping.")
        return {"status": "ignored", "reason": "missing message fields"}

    logger.info("[WEBHOOK] SMS received from '%s'.", sms.source)
    result = await asyncio.to_thread(pipeline.ingest, sms)

    if result.error:
        return {"status": "error", "reason": result.error}
    # A balance-only alert records nothing but can still move a wallet.
    touched_wallet = result.balance_update is BalanceUpdateStatus.APPLIED or result.proposal_open
    if result.skipped and not touched_wallet:
        return {"status": "ignored", "reason": result.skipped}
    return {"status": "ingested", "result": result.model_dump(mode="json")}
