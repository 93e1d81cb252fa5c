"""
Cost Engine

Computes the cost of one forecast period, broken down by category and by
line item. No rounding happens here; totals are always the exact sum of the
breakdown.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from typing import Optional, List, Dict
import logging

from forecast_errors import ConfigurationError
from forecast_models import (
    CostAssumption, CostCategory, LineKind, EventCosts, GrowthSpec,
    MarketingSetup, AllocationMode, BudgetApplication,
    SPEND_STREAM_LABELS, parse_spend_map, ZERO,
)
from growth_evaluator import GrowthEvaluator

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

# Growth override key for event staffing costs
STAFFING_GROWTH_KEY = "staffing"


@dataclass
class PeriodCosts:
    """Cost of one period"""
    period: int
    total: Decimal
    breakdown: Dict[str, Decimal] = field(default_factory=dict)
    line_items: Dict[str, Decimal] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "period": self.period,
            "total": str(self.total),
            "breakdown": {k: str(v) for k, v in self.breakdown.items()},
            "line_items": {k: str(v) for k, v in self.line_items.items()},
        }


class CostEngine:
    """
    Per-period cost computation.

    - fixed: flat value every period; one-time costs land on period 0, or
      value / duration every period when spread
    - recurring: value every period, growth-scaled only with an individual
      rate for the cost's name
    - variable: value% of the matching revenue of the same period
    - event costs: setup, COGS per spend stream, staffing and management
    - marketing: channel budgets or one high-level budget
    """

    def __init__(self, growth_evaluator: Optional[GrowthEvaluator] = None):
        self.growth = growth_evaluator or GrowthEvaluator()

    def compute_period_costs(
        self,
        period: int,
        revenue_by_category: Dict[str, Decimal],
        costs: List[CostAssumption],
        duration: int,
        growth: Optional[GrowthSpec] = None,
        event_costs: Optional[EventCosts] = None,
        marketing: Optional[MarketingSetup] = None,
    ) -> PeriodCosts:
        if duration <= 0:
            raise ConfigurationError(f"Duration must be positive, got {duration}")

        breakdown: Dict[str, Decimal] = {
            CostCategory.STAFFING.value: ZERO,
            CostCategory.MARKETING.value: ZERO,
            CostCategory.OPERATIONS.value: ZERO,
            CostCategory.OTHER.value: ZERO,
            CostCategory.COGS.value: ZERO,
        }
        line_items: Dict[str, Decimal] = {}

        def book(category: CostCategory, name: str, amount: Decimal):
            breakdown[category.value] += amount
            line_items[name] = line_items.get(name, ZERO) + amount

        # === ASSUMPTION LINES ===
        for cost in costs:
            book(cost.category, cost.name, self._line_cost(period, cost, revenue_by_category, duration, growth))

        # === EVENT COSTS ===
        if event_costs is not None:
            self._event_costs(period, event_costs, revenue_by_category, duration, growth, book)

        # === MARKETING ===
        if marketing is not None:
            self._marketing_costs(period, marketing, duration, book)

        total = sum(breakdown.values(), ZERO)
        logger.debug(f"Period {period} costs: total={total} breakdown={breakdown}")

        return PeriodCosts(period=period, total=total, breakdown=breakdown, line_items=line_items)

    def _line_cost(
        self,
        period: int,
        cost: CostAssumption,
        revenue_by_category: Dict[str, Decimal],
        duration: int,
        growth: Optional[GrowthSpec],
    ) -> Decimal:
        if cost.kind == LineKind.FIXED:
            if cost.one_time:
                return self._one_time(period, cost.value, cost.spread, duration)
            return cost.value

        if cost.kind == LineKind.RECURRING:
            if self.growth.has_override(growth, cost.name):
                return cost.value * self.growth.factor(growth, period, cost.name)
            return cost.value

        if cost.kind == LineKind.VARIABLE:
            revenue = revenue_for(revenue_by_category, cost.revenue_stream)
            return cost.value / HUNDRED * revenue

        raise ConfigurationError(f"Unsupported cost kind: {cost.kind!r}")

    def _event_costs(self, period, event_costs: EventCosts, revenue_by_category, duration, growth, book):
        if event_costs.setup_cost:
            book(
                CostCategory.OPERATIONS,
                "Setup Costs",
                self._one_time(period, event_costs.setup_cost, event_costs.spread_setup_cost, duration),
            )

        for stream, percent in event_costs.cogs_percent.items():
            label = SPEND_STREAM_LABELS[stream]
            revenue = revenue_by_category.get(label, ZERO)
            book(CostCategory.COGS, f"{label} COGS", percent / HUNDRED * revenue)

        if event_costs.staff_count and event_costs.staff_cost_per_person:
            staff_cost = event_costs.staff_count * event_costs.staff_cost_per_person
            if self.growth.has_override(growth, STAFFING_GROWTH_KEY):
                staff_cost = staff_cost * self.growth.factor(growth, period, STAFFING_GROWTH_KEY)
            book(CostCategory.STAFFING, "Staff Costs", staff_cost)

        if event_costs.management_costs:
            book(CostCategory.STAFFING, "Management Costs", event_costs.management_costs)

    def _marketing_costs(self, period, marketing: MarketingSetup, duration, book):
        if marketing.allocation_mode == AllocationMode.NONE:
            return

        if marketing.allocation_mode == AllocationMode.CHANNELS:
            for channel in marketing.channels:
                amount = distribute_budget(
                    channel.budget, channel.distribution, channel.spread_duration, period, duration
                )
                book(CostCategory.MARKETING, f"Marketing: {channel.name or channel.id}", amount)
            return

        if marketing.allocation_mode == AllocationMode.HIGH_LEVEL:
            amount = distribute_budget(
                marketing.total_budget, marketing.budget_application, marketing.spread_duration,
                period, duration,
            )
            book(CostCategory.MARKETING, "Marketing Budget", amount)
            return

        raise ConfigurationError(f"Unsupported marketing allocation mode: {marketing.allocation_mode!r}")

    @staticmethod
    def _one_time(period: int, value: Decimal, spread: bool, duration: int) -> Decimal:
        if spread:
            return value / duration
        return value if period == 0 else ZERO


def distribute_budget(
    budget: Decimal,
    application: BudgetApplication,
    spread_duration: Optional[int],
    period: int,
    duration: int,
) -> Decimal:
    """Share of a marketing budget that falls on `period`"""
    if application == BudgetApplication.UPFRONT:
        return budget if period == 0 else ZERO
    if application == BudgetApplication.SPREAD_EVENLY:
        return budget / duration
    if application == BudgetApplication.SPREAD_CUSTOM:
        span = spread_duration if spread_duration and spread_duration > 0 else duration
        return budget / span if period < span else ZERO
    raise ConfigurationError(f"Unsupported budget application: {application!r}")


def revenue_for(revenue_by_category: Dict[str, Decimal], stream: Optional[str]) -> Decimal:
    """
    Revenue a variable cost is a percentage of.

    `stream` may be a revenue line name or a spend stream key ("fb"); an
    unset stream means total revenue and an unknown one contributes nothing.
    """
    if stream is None:
        return sum(revenue_by_category.values(), ZERO)
    if stream in revenue_by_category:
        return revenue_by_category[stream]
    resolved = parse_spend_map({stream: 0})
    for spend_stream in resolved:
        return revenue_by_category.get(SPEND_STREAM_LABELS[spend_stream], ZERO)
    return ZERO
