"""Savings scenarios and 12-month projections from categorized expenses."""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..statements.models import CategorizedItem

SUBSCRIPTION_KEYWORDS = (
    "netflix",
    "spotify",
    "hbo",
    "prime",
    "disney+",
    "suscripción",
    "gym",
    "gimnasio",
)

NON_ESSENTIAL_CATEGORIES = frozenset({
    "Restaurantes y Ocio",
    "Comida a Domicilio",
    "Compras Online",
    "Viajes",
    "Entretenimiento",
})

# (subscription cut, non-essential cut)
SCENARIO_CUTS = {
    "simple": (Decimal("0.5"), Decimal("0.15")),
    "moderate": (Decimal("0.8"), Decimal("0.4")),
    "max": (Decimal("1.0"), Decimal("0.75")),
}

FORECAST_MONTHS = 12
SPANISH_MONTHS = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic")
FALLBACK_EXPENSE_CATEGORY = "Otros Gastos"


class CutType(str, Enum):
    SUBSCRIPTION = "subscription"
    NON_ESSENTIAL = "nonEssential"


@dataclass(frozen=True)
class ExpenseRemovedDetail:
    """One expense reduced in a scenario."""
    description: str
    original_amount: Decimal
    amount_removed: Decimal
    type: CutType
    percentage_removed: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "description": self.description,
            "originalAmount": float(self.original_amount),
            "amountRemoved": float(self.amount_removed),
            "type": self.type.value,
        }
        if self.percentage_removed is not None:
            data["percentageRemoved"] = float(self.percentage_removed)
        return data


@dataclass(frozen=True)
class SavingsScenario:
    """Monthly savings under the three cut scenarios."""
    simple: Decimal
    moderate: Decimal
    max: Decimal
    simple_details: Tuple[ExpenseRemovedDetail, ...] = ()
    moderate_details: Tuple[ExpenseRemovedDetail, ...] = ()
    max_details: Tuple[ExpenseRemovedDetail, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simple": float(self.simple),
            "moderate": float(self.moderate),
            "max": float(self.max),
            "simpleDetails": [d.to_dict() for d in self.simple_details],
            "moderateDetails": [d.to_dict() for d in self.moderate_details],
            "maxDetails": [d.to_dict() for d in self.max_details],
        }


def is_subscription(item: CategorizedItem) -> bool:
    """Case-insensitive keyword substring test on the provider name."""
    name = item.provider_name.lower()
    return any(keyword in name for keyword in SUBSCRIPTION_KEYWORDS)


def _partition(items: Iterable[CategorizedItem]) -> Tuple[List[CategorizedItem], List[CategorizedItem]]:
    subscriptions, non_essentials = [], []
    for item in items:
        if is_subscription(item):
            subscriptions.append(item)
        elif item.suggested_category in NON_ESSENTIAL_CATEGORIES:
            non_essentials.append(item)
    return subscriptions, non_essentials


def _apply_cuts(
    subscriptions: Sequence[CategorizedItem],
    non_essentials: Sequence[CategorizedItem],
    subscription_cut: Decimal,
    non_essential_cut: Decimal
) -> Tuple[Decimal, Tuple[ExpenseRemovedDetail, ...]]:
    total = Decimal("0")
    details = []

    for item in subscriptions:
        removed = item.total_amount * subscription_cut
        if removed > 0:
            total += removed
            details.append(ExpenseRemovedDetail(
                description=f"Suscripción: {item.provider_name}",
                original_amount=item.total_amount,
                amount_removed=removed,
                type=CutType.SUBSCRIPTION,
                percentage_removed=subscription_cut * 100
            ))

    for item in non_essentials:
        removed = item.total_amount * non_essential_cut
        if removed > 0:
            total += removed
            details.append(ExpenseRemovedDetail(
                description=f"{item.suggested_category}: {item.provider_name or 'Varios'}",
                original_amount=item.total_amount,
                amount_removed=removed,
                type=CutType.NON_ESSENTIAL,
                percentage_removed=non_essential_cut * 100
            ))

    return total, tuple(details)


def calculate_monthly_savings(expense_items: Optional[Iterable[CategorizedItem]]) -> SavingsScenario:
    """
    Compute the three savings scenarios.

    Subscriptions are matched by provider keyword first; remaining items count
    as non-essential when their category is in NON_ESSENTIAL_CATEGORIES.

    Args:
        expense_items: Categorized expense providers

    Returns:
        SavingsScenario with totals and per-item details (subscriptions first)
    """
    subscriptions, non_essentials = _partition(expense_items or ())

    results = {
        name: _apply_cuts(subscriptions, non_essentials, sub_cut, non_essential_cut)
        for name, (sub_cut, non_essential_cut) in SCENARIO_CUTS.items()
    }

    return SavingsScenario(
        simple=results["simple"][0],
        moderate=results["moderate"][0],
        max=results["max"][0],
        simple_details=results["simple"][1],
        moderate_details=results["moderate"][1],
        max_details=results["max"][1]
    )


def month_label(month_start: date) -> str:
    """Spanish short month and two-digit year, e.g. 'oct 26'."""
    return f"{SPANISH_MONTHS[month_start.month - 1]} {month_start.year % 100:02d}"


def _add_months(start: date, months: int) -> date:
    index = start.month - 1 + months
    return date(start.year + index // 12, index % 12 + 1, 1)


def _round(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def generate_forecast_data(user_data, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """
    Cumulative savings for the next 12 months, current month first.

    Args:
        user_data: UserProfile; its categorized expense items drive the projection
        today: Reference date, defaults to today

    Returns:
        12 dicts with keys month, ahorroSimple, ahorroModerado, ahorroMaximo
    """
    summary = getattr(user_data, "expenses_income_summary", None)
    items = summary.categorized_expense_items if summary is not None else None
    monthly = calculate_monthly_savings(items)

    start = (today or date.today()).replace(day=1)
    simple = moderate = maximum = Decimal("0")
    data = []

    for offset in range(FORECAST_MONTHS):
        simple += monthly.simple
        moderate += monthly.moderate
        maximum += monthly.max
        data.append({
            "month": month_label(_add_months(start, offset)),
            "ahorroSimple": _round(simple),
            "ahorroModerado": _round(moderate),
            "ahorroMaximo": _round(maximum),
        })

    return data


def top_expense_categories(
    expense_items: Optional[Iterable[CategorizedItem]],
    top_n: int = 5
) -> List[Tuple[str, Decimal]]:
    """Expense totals per category, largest first."""
    totals: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for item in expense_items or ():
        totals[item.suggested_category or FALLBACK_EXPENSE_CATEGORY] += item.total_amount

    ranked = sorted(totals.items(), key=lambda entry: entry[1], reverse=True)
    return ranked[:top_n]
