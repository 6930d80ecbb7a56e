import json
import os
import re

from rapidfuzz import fuzz, process

from sms_ledger.logger import get_logger
from sms_ledger.models import CategorizationResult, CategoryName, TransactionType

from .base import Classifier

logger = get_logger(__name__)

_NOISE = re.compile(r"gh₵|ghs|ghc|¢|[0-9]+|[^\w\s]")


def memory_key(text: str) -> str:
    """Normalize merchant or description text so amounts, ids and punctuation don't split entries."""
    return " ".join(_NOISE.sub(" ", text.lower()).split())


class MemoryMatcher(Classifier):
    """Remembers categories the user picked by hand."""

    def __init__(self, data_path: str = "memory.json", threshold: float = 90.0):
        self.data_path = data_path
        self.threshold = threshold
        self.memory: dict[str, str] = {}  # memory key -> category name
        self.load()

    def load(self) -> None:
        if os.path.exists(self.data_path):
            try:
                with open(self.data_path, encoding="utf-8") as f:
                    self.memory = json.load(f)
            except json.JSONDecodeError:
                logger.warning("[MEMORY] %s is not valid JSON; starting empty.", self.data_path)
                self.memory = {}

    def save(self) -> None:
        with open(self.data_path, "w", encoding="utf-8") as f:
            json.dump(self.memory, f, indent=2)

    def classify(
        self,
        text: str,
        transaction_type: TransactionType | None = None,
        merchant: str | None = None,
    ) -> CategorizationResult | None:
        if not self.memory:
            return None

        key = memory_key(merchant or text)
        if not key:
            return None

        # 1. Exact match
        if key in self.memory:
            return CategorizationResult(
                category=CategoryName.resolve(self.memory[key]),
                confidence=1.0,
                source="memory_exact",
            )

        # 2. Fuzzy match
        result = process.extractOne(key, self.memory.keys(), scorer=fuzz.token_sort_ratio)
        if result:
            match_key, score, _ = result
            if score >= self.threshold:
                return CategorizationResult(
                    category=CategoryName.resolve(self.memory[match_key]),
                    confidence=score / 100.0,
                    source="memory_fuzzy",
                )

        return None

    def learn(self, text: str, category: CategoryName, merchant: str | None = None) -> None:
        key = memory_key(merchant or text)
        if not key:
            return
        self.memory[key] = CategoryName.resolve(category).value
        self.save()

    def clear(self) -> None:
        self.memory = {}
        self.save()
