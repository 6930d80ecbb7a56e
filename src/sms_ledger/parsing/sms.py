"""Field extraction from provider SMS bodies: amount, direction and counterparty."""

import re
from dataclasses import dataclass
from decimal import Decimal

from sms_ledger.domain.amounts import clean_description, parse_amount
from sms_ledger.domain.patterns import DEFAULT_LIBRARY, PatternLibrary
from sms_ledger.models import TransactionType

_AMOUNT = re.compile(r"(?:GH₵|GHS|GHC|¢)\s*([0-9][0-9,]*(?:\.\d+)?)", re.IGNORECASE)

# Ordered by specificity; the cue that appears earliest in the text wins.
_TYPE_CUES: tuple[tuple[str, TransactionType], ...] = (
    ("payment received", TransactionType.CREDIT),
    ("payment to", TransactionType.DEBIT),
    ("payment for", TransactionType.DEBIT),
    ("payment made", TransactionType.DEBIT),
    ("transferred to", TransactionType.DEBIT),
    ("transfer to", TransactionType.DEBIT),
    ("cash out", TransactionType.DEBIT),
    ("cash in", TransactionType.CREDIT),
    ("received", TransactionType.CREDIT),
    ("credited", TransactionType.CREDIT),
    ("deposit", TransactionType.CREDIT),
    ("refund", TransactionType.CREDIT),
    ("debited", TransactionType.DEBIT),
    ("withdraw", TransactionType.DEBIT),
    ("sent", TransactionType.DEBIT),
    ("paid", TransactionType.DEBIT),
    ("bought", TransactionType.DEBIT),
    ("purchase", TransactionType.DEBIT),
)
_TYPE_PATTERNS = tuple(
    (re.compile(rf"\b{re.escape(cue)}", re.IGNORECASE), kind) for cue, kind in _TYPE_CUES
)

_COUNTERPARTY = re.compile(
    r"\b(from|to)\s+(?!(?:bank|acc|account)\b)([A-Za-z][A-Za-z0-9&'\- ]{1,40}?)"
    r"(?=\s*(?:[.,;]|\s+on\s|\s+ref|\s+with\s|\s+at\s|\s+\d|$))",
    re.IGNORECASE,
)
_NOT_A_PARTY = {"your", "you", "the", "ghs", "a", "an"}


@dataclass(frozen=True)
class SmsDetails:
    amount: Decimal | None
    type: TransactionType | None
    counterparty: str | None
    description: str


def _strip_balance_phrases(text: str, library: PatternLibrary) -> str:
    for recognizer in library.balance_recognizers:
        text = recognizer.pattern.sub(" ", text)
    return text


def extract_amount(text: str, library: PatternLibrary = DEFAULT_LIBRARY) -> Decimal | None:
    """First currency amount in the message that is not part of a balance phrase."""
    for match in _AMOUNT.finditer(_strip_balance_phrases(text, library)):
        value = parse_amount(match.group(1))
        if value is not None:
            return value
    return None


def extract_type(text: str) -> TransactionType | None:
    best: tuple[int, TransactionType] | None = None
    for pattern, kind in _TYPE_PATTERNS:
        match = pattern.search(text)
        if match and (best is None or match.start() < best[0]):
            best = (match.start(), kind)
    return best[1] if best else None


def extract_counterparty(text: str) -> str | None:
    for match in _COUNTERPARTY.finditer(text):
        name = " ".join(match.group(2).split())
        if name.lower().split()[0] not in _NOT_A_PARTY:
            return name
    return None


def extract_details(text: str, library: PatternLibrary = DEFAULT_LIBRARY) -> SmsDetails:
    return SmsDetails(
        amount=extract_amount(text, library),
        type=extract_type(text),
        counterparty=extract_counterparty(text),
        description=clean_description(text),
    )
