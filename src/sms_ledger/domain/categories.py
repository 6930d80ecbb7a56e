from dataclasses import dataclass

from sms_ledger.models import CategoryName


@dataclass(frozen=True)
class CategoryConfig:
    name: CategoryName
    color: str
    keywords: tuple[str, ...] = ()


TAXONOMY: tuple[CategoryConfig, ...] = (
    CategoryConfig(
        CategoryName.CHURCH_CHARITY,
        "#8B5CF6",
        ("church", "tithe", "offering", "charity", "donation", "donate", "harvest", "welfare"),
    ),
    CategoryConfig(
        CategoryName.FOOD_DINING,
        "#F97316",
        ("restaurant", "food", "lunch", "dinner", "breakfast", "cafe", "coffee", "kfc", "pizza",
         "chicken", "meal", "chop bar", "papaye", "eatery"),
    ),
    CategoryConfig(
        CategoryName.TRANSPORTATION,
        "#3B82F6",
        ("uber", "bolt", "yango", "fuel", "petrol", "diesel", "taxi", "trotro", "bus", "ride", "fare",
         "goil", "shell", "star oil", "filling station"),
    ),
    CategoryConfig(
        CategoryName.SHOPPING,
        "#EC4899",
        ("shop", "store", "mall", "melcom", "shoprite", "game stores", "palace", "market",
         "supermarket", "jumia", "retail"),
    ),
    CategoryConfig(
        CategoryName.UTILITIES_BILLS,
        "#EAB308",
        ("electricity", "ecg", "gwcl", "water bill", "dstv", "gotv", "internet", "subscription",
         "bill", "utility", "prepaid", "postpaid", "airtime", "bundle", "data bundle"),
    ),
    CategoryConfig(
        CategoryName.ENTERTAINMENT,
        "#22C55E",
        ("movie", "cinema", "netflix", "spotify", "showmax", "concert", "silverbird", "betway",
         "sportybet"),
    ),
    CategoryConfig(
        CategoryName.HEALTH,
        "#EF4444",
        ("hospital", "pharmacy", "clinic", "doctor", "medicine", "medical", "chemist", "laboratory",
         "nhis"),
    ),
    CategoryConfig(
        CategoryName.EDUCATION,
        "#14B8A6",
        ("school fees", "tuition", "university", "college", "course", "textbook", "waec",
         "training"),
    ),
    CategoryConfig(
        CategoryName.INCOME,
        "#10B981",
        ("salary", "payment received", "wage", "bonus", "refund", "commission earned", "allowance"),
    ),
    CategoryConfig(
        CategoryName.TRANSFERS,
        "#6B7280",
        ("transfer", "transferred", "sent to", "send to", "received from", "send money",
         "instant pay"),
    ),
    CategoryConfig(
        CategoryName.CASH_WITHDRAWAL,
        "#6366F1",
        ("cash out", "cashout", "withdrawal", "withdrawn", "atm"),
    ),
    CategoryConfig(
        CategoryName.FEES_CHARGES,
        "#F43F5E",
        ("sms alert", "sms charges", "maintenance fee", "ledger fee", "card fee", "account charges",
         "penalty"),
    ),
    CategoryConfig(CategoryName.OTHER, "#64748B"),
)

_BY_NAME = {config.name: config for config in TAXONOMY}

DEFAULT_CATEGORY = CategoryName.OTHER


def get_category(name: str | CategoryName) -> CategoryConfig:
    """Look up a taxonomy entry; unknown names resolve to Other."""
    return _BY_NAME[CategoryName.resolve(name)]


def category_names() -> list[str]:
    return [config.name.value for config in TAXONOMY]
