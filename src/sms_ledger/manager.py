import os

from sms_ledger.classifiers.base import Classifier
from sms_ledger.classifiers.keywords import KeywordClassifier
from sms_ledger.classifiers.memory import MemoryMatcher
from sms_ledger.domain.categories import DEFAULT_CATEGORY
from sms_ledger.logger import get_logger
from sms_ledger.models import CategorizationResult, CategoryName, TransactionType

logger = get_logger(__name__)


class CategoryAssigner:
    def __init__(self, memory_threshold: float = 90.0, data_dir: str = "."):
        self.classifiers: list[Classifier] = []

        # 1. User corrections (highest priority)
        self.memory = MemoryMatcher(
            data_path=os.path.join(data_dir, "memory.json"),
            threshold=memory_threshold,
        )
        self.classifiers.append(self.memory)

        # 2. Keyword table
        self.keywords = KeywordClassifier()
        self.classifiers.append(self.keywords)

    def categorize(
        self,
        text: str,
        transaction_type: TransactionType | None = None,
        merchant: str | None = None,
    ) -> CategorizationResult:
        for classifier in self.classifiers:
            classifier_name = classifier.__class__.__name__
            result = classifier.classify(text, transaction_type=transaction_type, merchant=merchant)
            if result:
                logger.debug(
                    f"{classifier_name} returned: '{result.category.value}' "
                    f"(confidence: {result.confidence:.2f})"
                )
                return result
            logger.debug(f"{classifier_name} returned: None")

        logger.debug(f"No classifier matched for: '{text[:50]}'")
        return CategorizationResult(category=DEFAULT_CATEGORY, confidence=0.0, source="default")

    def assign(
        self,
        text: str,
        transaction_type: TransactionType | None = None,
        merchant: str | None = None,
    ) -> CategoryName:
        return self.categorize(text, transaction_type=transaction_type, merchant=merchant).category

    def learn(self, text: str, category: CategoryName, merchant: str | None = None) -> None:
        """
        Record a user re-categorization.
        """
        self.memory.learn(text, category, merchant=merchant)

    def clear_models(self) -> None:
        self.memory.clear()
        logger.info("Category memory cleared.")
