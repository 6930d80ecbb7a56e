from decimal import Decimal

from sms_ledger.domain.amounts import parse_amount
from sms_ledger.domain.patterns import DEFAULT_LIBRARY, PatternLibrary
from sms_ledger.logger import MISSES_LOGGER, get_logger
from sms_ledger.models import ParsedTransactionInfo, WalletKind

logger = get_logger(__name__)
miss_logger = get_logger(MISSES_LOGGER)


class MessageClassifier:
    """
    Reads transfer likelihood, wallet route and balance snapshot out of one SMS body.

    Pure and deterministic: the same text always yields the same result, and no
    input makes it raise. Text that matches nothing comes back as an all-unknown
    ParsedTransactionInfo and is reported on the misses logger.
    """

    def __init__(self, library: PatternLibrary = DEFAULT_LIBRARY) -> None:
        self.library = library

    def classify(self, description: str) -> ParsedTransactionInfo:
        desc = description.lower()

        is_transfer_likely = any(r.search(desc) for r in self.library.transfer_signals)

        source_kind, dest_kind = self._route(desc)
        balance = self._balance(description)

        if not is_transfer_likely and source_kind is None and balance is None:
            miss_logger.info("[MISS] library=%s text='%s'", self.library.version, description[:120])

        return ParsedTransactionInfo(
            is_transfer_likely=is_transfer_likely,
            suggested_source_type=source_kind,
            suggested_dest_type=dest_kind,
            balance_snapshot=balance,
        )

    def _route(self, desc: str) -> tuple[WalletKind | None, WalletKind | None]:
        for recognizer in self.library.route_recognizers:
            if recognizer.search(desc):
                logger.debug("[ROUTE] '%s' matched: %s -> %s", recognizer.name,
                             recognizer.source_kind, recognizer.dest_kind)
                return recognizer.source_kind, recognizer.dest_kind
        return None, None

    def _balance(self, text: str) -> Decimal | None:
        for recognizer in self.library.balance_recognizers:
            match = recognizer.search(text)
            if not match:
                continue
            # First matching phrase decides, even if its number is malformed.
            value = parse_amount(match.group(1))
            if value is None:
                logger.debug("[BALANCE] '%s' captured unparseable '%s'", recognizer.name, match.group(1))
            return value
        return None


_default_classifier = MessageClassifier()


def classify_message(description: str) -> ParsedTransactionInfo:
    return _default_classifier.classify(description)
