"""Amount and description helpers for provider SMS text."""

import re
from decimal import Decimal, InvalidOperation

_CURRENCY_TOKENS = re.compile(r"GH₵|GHS|GHC|¢", re.IGNORECASE)

MAX_DESCRIPTION_LENGTH = 160


def parse_amount(amount_str: str | None) -> Decimal | None:
    """
    Parse an amount captured from an SMS into a Decimal.

    Handles:
    - Currency prefixes (GHS, GH₵, GHC, ¢)
    - Thousands separators (commas)
    - A trailing sentence period ("GHS 1,200.00.")

    Returns:
        Decimal if the capture is a well-formed number, None otherwise
    """
    if not amount_str:
        return None

    cleaned = _CURRENCY_TOKENS.sub("", amount_str)
    cleaned = "".join(cleaned.split())
    cleaned = cleaned.replace(",", "").rstrip(".")

    if not cleaned:
        return None

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None

    if not value.is_finite():
        return None
    return value


def clean_description(desc: str) -> str:
    """
    Clean up an SMS body for use as a transaction description.

    Removes:
    - Extra whitespace and newlines
    - Transaction and reference ids
    - Trailing separators left behind by the removals
    """
    desc = " ".join(desc.split())

    desc = re.sub(r"(?:Financial\s+)?Transaction\s+Id:?\s*\w+\.?", "", desc, flags=re.IGNORECASE)
    desc = re.sub(r"\bRef(?:erence)?(?:\s+No)?[:.]?\s*[A-Z0-9-]*\d[A-Z0-9-]*\.?", "", desc, flags=re.IGNORECASE)

    desc = " ".join(desc.split()).strip(" .,;")

    if len(desc) > MAX_DESCRIPTION_LENGTH:
        desc = desc[: MAX_DESCRIPTION_LENGTH - 3].rstrip() + "..."
    return desc
