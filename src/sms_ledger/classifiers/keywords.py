import re

from sms_ledger.domain.categories import TAXONOMY, CategoryConfig
from sms_ledger.models import CategorizationResult, CategoryName, TransactionType

from .base import Classifier

TRANSFER_CONFIDENCE = 0.8
INCOME_CONFIDENCE = 0.6
SCORED_CONFIDENCE = 0.7

# Categories that are assigned by rule, never by keyword score.
_RULE_ONLY = {CategoryName.INCOME, CategoryName.OTHER}


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(keyword.lower())}(?!\w)")


class KeywordClassifier(Classifier):
    """Static keyword table over the fixed taxonomy. Whole-word matches only."""

    def __init__(self, taxonomy: tuple[CategoryConfig, ...] = TAXONOMY):
        self.table = [
            (config.name, [(kw, _keyword_pattern(kw)) for kw in config.keywords])
            for config in taxonomy
        ]
        self.transfer_patterns = next(
            (patterns for name, patterns in self.table if name == CategoryName.TRANSFERS), []
        )

    def _mentions_transfer(self, desc: str) -> bool:
        return any(pattern.search(desc) for _, pattern in self.transfer_patterns)

    def classify(
        self,
        text: str,
        transaction_type: TransactionType | None = None,
        merchant: str | None = None,
    ) -> CategorizationResult | None:
        desc = " ".join(part for part in (text, merchant) if part).lower()
        if not desc:
            return None

        if transaction_type == TransactionType.CREDIT:
            if self._mentions_transfer(desc):
                return CategorizationResult(
                    category=CategoryName.TRANSFERS, confidence=TRANSFER_CONFIDENCE, source="keywords"
                )
            return CategorizationResult(
                category=CategoryName.INCOME, confidence=INCOME_CONFIDENCE, source="keywords"
            )

        if self._mentions_transfer(desc):
            return CategorizationResult(
                category=CategoryName.TRANSFERS, confidence=TRANSFER_CONFIDENCE, source="keywords"
            )

        scores: dict[CategoryName, int] = {}
        for name, patterns in self.table:
            if name in _RULE_ONLY or name == CategoryName.TRANSFERS:
                continue
            # Longer keywords are more specific.
            score = sum(len(kw) for kw, pattern in patterns if pattern.search(desc))
            if score:
                scores[name] = score

        if not scores:
            return None

        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
            # Ambiguous between two categories; leave it to the fallback.
            return None

        return CategorizationResult(
            category=ranked[0][0], confidence=SCORED_CONFIDENCE, source="keywords"
        )

    def learn(self, text: str, category: CategoryName, merchant: str | None = None) -> None:
        # The keyword table is fixed; corrections go to the memory matcher.
        pass
