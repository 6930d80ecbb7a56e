from abc import ABC, abstractmethod

from sms_ledger.models import CategorizationResult, CategoryName, TransactionType


class Classifier(ABC):
    @abstractmethod
    def classify(
        self,
        text: str,
        transaction_type: TransactionType | None = None,
        merchant: str | None = None,
    ) -> CategorizationResult | None:
        """Attempt to categorize the transaction text."""
        pass

    @abstractmethod
    def learn(self, text: str, category: CategoryName, merchant: str | None = None) -> None:
        """Learn from a new text-category pair."""
        pass
