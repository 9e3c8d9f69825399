"""
Transaction Categories

The category list is localized, but category identity is not:
every category has a stable id and one label per language.
Transactions keep storing the label the user picked, and
resolve_category_id() maps any known label back to its id so
data entered in one language can be grouped in another.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from bookkeeper.models.transaction import TransactionType
from bookkeeper.models.user import Language


class Category(BaseModel):
    """A category with labels in every supported language."""

    id: str
    type: TransactionType
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    color: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    labels: dict[Language, str]

    def label(self, language: Language) -> str:
        return self.labels.get(language) or self.labels[Language.EN]


def _category(cid, ctype, tax_rate, color, en, ru, ky) -> Category:
    return Category(
        id=cid,
        type=ctype,
        tax_rate=Decimal(tax_rate),
        color=color,
        labels={Language.EN: en, Language.RU: ru, Language.KY: ky},
    )


_INCOME = TransactionType.INCOME
_EXPENSE = TransactionType.EXPENSE

CATEGORIES: tuple[Category, ...] = (
    _category("sales", _INCOME, "0.12", "#10B981", "Sales", "Продажи", "Сатуу"),
    _category("services", _INCOME, "0.12", "#059669", "Services", "Услуги", "Кызматтар"),
    _category("software_development", _INCOME, "0.12", "#06B6D4",
              "Software Development", "Разработка ПО", "ПО иштеп чыгуу"),
    _category("consulting", _INCOME, "0.12", "#0EA5E9", "Consulting", "Консалтинг", "Консалтинг"),
    _category("other_income", _INCOME, "0.12", "#6B7280", "Other", "Другое", "Башка"),
    _category("clothing_sales", _INCOME, "0.12", "#22C55E",
              "Clothing Sales", "Продажа одежды", "Кийим сатуу"),
    _category("accessory_sales", _INCOME, "0.12", "#16A34A",
              "Accessory Sales", "Продажа аксессуаров", "Буюм сатуу"),
    _category("footwear_sales", _INCOME, "0.12", "#15803D",
              "Footwear Sales", "Продажа обуви", "Бут кийим сатуу"),
    _category("office_rent", _EXPENSE, "0", "#EF4444", "Office Rent", "Аренда офиса", "Офис ижарасы"),
    _category("salaries", _EXPENSE, "0", "#DC2626", "Salaries", "Зарплаты", "Айлык акылар"),
    _category("utilities", _EXPENSE, "0", "#B91C1C",
              "Utilities", "Коммунальные услуги", "Коммуналдык кызматтар"),
    _category("marketing", _EXPENSE, "0", "#991B1B", "Marketing", "Маркетинг", "Маркетинг"),
    _category("transport", _EXPENSE, "0", "#7F1D1D", "Transport", "Транспорт", "Транспорт"),
    _category("equipment", _EXPENSE, "0", "#F97316", "Equipment", "Оборудование", "Жабдуулар"),
    _category("materials", _EXPENSE, "0", "#EA580C", "Materials", "Материалы", "Материалдар"),
    _category("goods_purchase", _EXPENSE, "0", "#C2410C",
              "Goods Purchase", "Закупка товара", "Товар сатып алуу"),
    _category("stall_rent", _EXPENSE, "0", "#9A3412",
              "Stall Rent", "Аренда места", "Орун ижарасы"),
    _category("other_expense", _EXPENSE, "0", "#6B7280", "Other", "Другое", "Башка"),
)


def localized_categories(
    language: Language,
    category_type: Optional[TransactionType] = None,
) -> list[tuple[str, str]]:
    """(id, label) pairs for a language, optionally for one transaction type."""
    return [
        (cat.id, cat.label(language))
        for cat in CATEGORIES
        if category_type is None or cat.type == category_type
    ]


def resolve_category_id(
    label: str,
    category_type: Optional[TransactionType] = None,
) -> Optional[str]:
    """
    Map a label in any language back to its stable id.

    "Other" exists for both types; pass category_type to disambiguate.
    Returns None for labels outside the fixed set.
    """
    needle = label.strip().casefold()
    for cat in CATEGORIES:
        if category_type is not None and cat.type != category_type:
            continue
        if any(text.casefold() == needle for text in cat.labels.values()):
            return cat.id
    return None


def get_category(category_id: str) -> Optional[Category]:
    for cat in CATEGORIES:
        if cat.id == category_id:
            return cat
    return None
