"""Combo prices"""

from decimal import Decimal

COMBO_PRICES = {
    "Комбо 25": Decimal("25"),
    "Комбо 35": Decimal("35"),
}
DEFAULT_COMBO_PRICE = Decimal("45")


def get_combo_price(combo_type: str | None) -> Decimal:
    """Price of one lunch of the given combo, unknown combos cost the default price"""
    return COMBO_PRICES.get((combo_type or "").strip(), DEFAULT_COMBO_PRICE)


def list_combos() -> list[dict]:
    return [
        {"type": combo_type, "price": float(price), "items": _COMBO_ITEMS.get(combo_type, [])}
        for combo_type, price in COMBO_PRICES.items()
    ]


_COMBO_ITEMS = {
    "Комбо 25": ["Суп", "Салат", "Хлеб"],
    "Комбо 35": ["Суп", "Второе блюдо", "Салат", "Хлеб", "Напиток"],
}
