from unittest.mock import patch

import pytest

from sms_ledger.manager import CategoryAssigner
from sms_ledger.models import CategorizationResult, CategoryName, TransactionType


@pytest.fixture
def mock_classifiers():
    with patch("sms_ledger.manager.MemoryMatcher") as mock_mem, \
         patch("sms_ledger.manager.KeywordClassifier") as mock_kw:
        yield mock_mem, mock_kw


def test_assigner_orchestration_priority(mock_classifiers):
    mock_mem_cls, mock_kw_cls = mock_classifiers
    mem_instance = mock_mem_cls.return_value
    kw_instance = mock_kw_cls.return_value

    assigner = CategoryAssigner(data_dir=".")

    # Case 1: Memory matches
    mem_instance.classify.return_value = CategorizationResult(
        category=CategoryName.HEALTH, confidence=1.0, source="memory_exact"
    )
    res = assigner.categorize("Test")
    assert res.category == CategoryName.HEALTH
    kw_instance.classify.assert_not_called()

    # Case 2: Memory fails, keywords match
    mem_instance.classify.return_value = None
    kw_instance.classify.return_value = CategorizationResult(
        category=CategoryName.SHOPPING, confidence=0.7, source="keywords"
    )
    res = assigner.categorize("Test")
    assert res.category == CategoryName.SHOPPING

    # Case 3: Nothing matches
    kw_instance.classify.return_value = None
    res = assigner.categorize("Test")
    assert res.category == CategoryName.OTHER
    assert res.source == "default"
    assert res.confidence == 0.0


def test_assigner_passes_context(mock_classifiers):
    mock_mem_cls, mock_kw_cls = mock_classifiers
    mem_instance = mock_mem_cls.return_value
    mem_instance.classify.return_value = None
    mock_kw_cls.return_value.classify.return_value = None

    assigner = CategoryAssigner(data_dir=".")
    assigner.categorize("Payment for GHS 20.00 to KFC", transaction_type=TransactionType.DEBIT, merchant="KFC")

    mem_instance.classify.assert_called_once_with(
        "Payment for GHS 20.00 to KFC", transaction_type=TransactionType.DEBIT, merchant="KFC"
    )


def test_assigner_uses_threshold_and_data_dir(mock_classifiers, tmp_path):
    mock_mem_cls, _ = mock_classifiers
    CategoryAssigner(memory_threshold=80.0, data_dir=str(tmp_path))
    mock_mem_cls.assert_called_once_with(data_path=str(tmp_path / "memory.json"), threshold=80.0)


def test_learned_category_overrides_keywords(tmp_path):
    assigner = CategoryAssigner(data_dir=str(tmp_path))
    text = "Payment for GHS 20.00 to KFC"

    assert assigner.assign(text, merchant="KFC") == CategoryName.FOOD_DINING

    assigner.learn(text, CategoryName.ENTERTAINMENT, merchant="KFC")
    assert assigner.assign(text, merchant="KFC") == CategoryName.ENTERTAINMENT

    assigner.clear_models()
    assert assigner.assign(text, merchant="KFC") == CategoryName.FOOD_DINING


def test_unmatched_text_is_other(tmp_path):
    assigner = CategoryAssigner(data_dir=str(tmp_path))
    assert assigner.assign("zzz qqq") == CategoryName.OTHER
