from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from db.models import ItineraryItemKind

# REST (and anything unknown) only contributes to the total.
CATEGORY_BY_KIND = {
    ItineraryItemKind.STAY.value: "stay",
    ItineraryItemKind.FOOD.value: "food",
    ItineraryItemKind.MOVE.value: "move",
    ItineraryItemKind.SIGHT.value: "activity",
    ItineraryItemKind.ACTIVITY.value: "activity",
}


@dataclass
class BudgetSummary:
    total_spent: float = 0.0
    spent_on_stay: float = 0.0
    spent_on_food: float = 0.0
    spent_on_move: float = 0.0
    spent_on_activity: float = 0.0
    budget_remaining: float = 0.0
    budget_progress: float = 0.0
    expense_items: List[Any] = field(default_factory=list)

    @property
    def categorized_total(self) -> float:
        return (
            self.spent_on_stay
            + self.spent_on_food
            + self.spent_on_move
            + self.spent_on_activity
        )


def is_expense_item(item: Any) -> bool:
    cost = getattr(item, "cost", None)
    return cost is not None and cost > 0


def _kind_value(kind: Any) -> Any:
    return kind.value if isinstance(kind, ItineraryItemKind) else kind


def summarize_budget(
    itinerary: Iterable[Any], budget_cap: Optional[float]
) -> BudgetSummary:
    """Roll a trip's itinerary up into spend totals against its budget cap.

    Items may be ORM rows or schema objects; only ``cost`` and ``kind`` are
    read. A null cap is treated as 0, so any spend leaves a negative
    remainder and progress stays at 0.
    """
    summary = BudgetSummary()
    summary.expense_items = [item for item in itinerary if is_expense_item(item)]

    for item in summary.expense_items:
        cost = item.cost
        summary.total_spent += cost
        category = CATEGORY_BY_KIND.get(_kind_value(item.kind))
        if category == "stay":
            summary.spent_on_stay += cost
        elif category == "food":
            summary.spent_on_food += cost
        elif category == "move":
            summary.spent_on_move += cost
        elif category == "activity":
            summary.spent_on_activity += cost

    total_budget = budget_cap or 0
    summary.budget_remaining = total_budget - summary.total_spent
    summary.budget_progress = (
        (summary.total_spent / total_budget) * 100 if total_budget > 0 else 0
    )
    return summary
