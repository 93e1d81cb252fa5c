"""
Forecast Generator

Turns an assumption set into an ordered list of period records with revenue,
cost, profit, attendance and running totals.
"""

from datetime import date
from decimal import Decimal
from dataclasses import dataclass, field
from typing import Optional, List, Dict
import logging

from dateutil.relativedelta import relativedelta

from forecast_errors import ConfigurationError, PreconditionError
from forecast_models import (
    AssumptionSet, RevenueAssumption, CostAssumption, EventMetadata, GrowthSpec,
    GrowthKind, MarketingSetup, PeriodRecord, SpendStream, TimeUnit,
    SPEND_STREAM_LABELS, PER_CUSTOMER_STREAM_NAMES, ZERO,
)
from growth_evaluator import GrowthEvaluator
from cost_engine import CostEngine

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


# =============================================================================
# NORMALIZATION
# =============================================================================

@dataclass
class NormalizedModel:
    """Fully-populated view of an assumption set; nothing here is optional except event detail"""
    duration: int
    time_unit: TimeUnit
    start_date: Optional[date]
    growth: GrowthSpec
    revenue_streams: List[RevenueAssumption]
    costs: List[CostAssumption]
    marketing: MarketingSetup
    event: Optional[EventMetadata] = None
    attendance_growth: Optional[GrowthSpec] = None
    spend_growth: Optional[GrowthSpec] = None
    notes: List[str] = field(default_factory=list)


def normalize_assumptions(model: AssumptionSet) -> NormalizedModel:
    """
    Resolve every default of an assumption set in one place.

    Missing optional data falls back to a neutral baseline (no growth, no
    marketing, no event detail). A non-positive duration is a configuration
    error.
    """
    if model is None:
        raise PreconditionError("An assumption set is required to generate a forecast")

    notes: List[str] = []
    event = model.metadata

    if event is not None and event.duration is not None:
        duration = event.duration
    elif model.duration is not None:
        duration = model.duration
    else:
        duration = 1
        notes.append("duration not set, defaulting to 1 period")
    if duration <= 0:
        raise ConfigurationError(f"Forecast duration must be positive, got {duration}")

    if model.growth_model is not None:
        growth = model.growth_model
    else:
        growth = GrowthSpec(kind=GrowthKind.LINEAR, rate=ZERO)
        notes.append("no growth model, treating growth rate as 0")

    revenue_streams = list(model.revenue_streams)
    attendance_growth = None
    spend_growth = None
    if event is not None:
        # Per-customer revenue replaces the matching generic lines
        revenue_streams = [r for r in revenue_streams if r.name not in PER_CUSTOMER_STREAM_NAMES]
        attendance_growth = _attendance_growth(model.growth_model, event)
        spend_growth = _spend_growth(model.growth_model, event)

    for note in notes:
        logger.debug(f"Normalizing assumptions: {note}")

    return NormalizedModel(
        duration=duration,
        time_unit=event.time_unit if event is not None else model.time_unit,
        start_date=model.start_date,
        growth=growth,
        revenue_streams=revenue_streams,
        costs=list(model.costs),
        marketing=model.marketing or MarketingSetup(),
        event=event,
        attendance_growth=attendance_growth,
        spend_growth=spend_growth,
        notes=notes,
    )


def _attendance_growth(growth_model: Optional[GrowthSpec], event: EventMetadata) -> GrowthSpec:
    # Attendance grows by the event attendance rate. Linear models add it per
    # period; every other model, seasonal included, compounds it.
    if growth_model is not None and growth_model.kind == GrowthKind.LINEAR:
        kind = GrowthKind.LINEAR
    else:
        kind = GrowthKind.EXPONENTIAL
    return GrowthSpec(kind=kind, rate=event.growth.attendance_growth_rate / HUNDRED)


def _spend_growth(growth_model: Optional[GrowthSpec], event: EventMetadata) -> Optional[GrowthSpec]:
    if not event.growth.use_customer_spend_growth or not event.growth.spend_growth_rates:
        return None
    if growth_model is not None and growth_model.kind == GrowthKind.LINEAR:
        kind = GrowthKind.LINEAR
    else:
        kind = GrowthKind.EXPONENTIAL
    return GrowthSpec(
        kind=kind,
        rate=ZERO,
        individual_rates={
            stream.value: rate / HUNDRED for stream, rate in event.growth.spend_growth_rates.items()
        },
    )


def period_label(period: int, time_unit: TimeUnit) -> str:
    unit = "Week" if time_unit == TimeUnit.WEEK else "Month"
    return f"{unit} {period + 1}"


def period_start(start_date: Optional[date], period: int, time_unit: TimeUnit) -> Optional[date]:
    if start_date is None:
        return None
    if time_unit == TimeUnit.WEEK:
        return start_date + relativedelta(weeks=period)
    return start_date + relativedelta(months=period)


# =============================================================================
# GENERATOR
# =============================================================================

class ForecastGenerator:
    """
    Deterministic period-by-period forecast.

    Holds no state between calls; the same assumption set always produces the
    same records.
    """

    def __init__(
        self,
        growth_evaluator: Optional[GrowthEvaluator] = None,
        cost_engine: Optional[CostEngine] = None,
    ):
        self.growth = growth_evaluator or GrowthEvaluator()
        self.cost_engine = cost_engine or CostEngine(self.growth)

    def generate(self, model: AssumptionSet) -> List[PeriodRecord]:
        """
        Generate the forecast for an assumption set.

        For each period p:
        1. Compute revenue per stream (generic streams grown by the growth
           model, per-customer streams from attendance * spend)
        2. Compute costs through the cost engine
        3. profit = revenue - cost, and running totals
        """
        normalized = normalize_assumptions(model)

        records: List[PeriodRecord] = []
        cumulative_revenue = ZERO
        cumulative_cost = ZERO
        cumulative_profit = ZERO

        for p in range(normalized.duration):
            revenue_breakdown, attendance = self._period_revenue(normalized, p)
            revenue = sum(revenue_breakdown.values(), ZERO)

            costs = self.cost_engine.compute_period_costs(
                p,
                revenue_breakdown,
                normalized.costs,
                normalized.duration,
                growth=normalized.growth,
                event_costs=normalized.event.costs if normalized.event is not None else None,
                marketing=normalized.marketing,
            )

            profit = revenue - costs.total
            cumulative_revenue += revenue
            cumulative_cost += costs.total
            cumulative_profit += profit

            records.append(PeriodRecord(
                period=p,
                label=period_label(p, normalized.time_unit),
                period_start=period_start(normalized.start_date, p, normalized.time_unit),
                revenue=revenue,
                cost=costs.total,
                profit=profit,
                cumulative_revenue=cumulative_revenue,
                cumulative_cost=cumulative_cost,
                cumulative_profit=cumulative_profit,
                revenue_breakdown=revenue_breakdown,
                cost_breakdown=costs.breakdown,
                cost_line_items=costs.line_items,
                attendance=attendance,
            ))

        logger.info(
            f"Generated {len(records)}-period forecast: "
            f"revenue={cumulative_revenue} cost={cumulative_cost} profit={cumulative_profit}"
        )
        return records

    def _period_revenue(self, model: NormalizedModel, p: int):
        breakdown: Dict[str, Decimal] = {}

        for stream in model.revenue_streams:
            value = stream.value * self.growth.factor(model.growth, p, stream.name)
            breakdown[stream.name] = breakdown.get(stream.name, ZERO) + value

        attendance = None
        if model.event is not None:
            attendance = model.event.initial_attendance * self.growth.factor(model.attendance_growth, p)
            for spend_stream in SpendStream:
                if spend_stream not in model.event.per_customer:
                    continue
                rate = self._spend_rate(model, spend_stream, p)
                label = SPEND_STREAM_LABELS[spend_stream]
                breakdown[label] = breakdown.get(label, ZERO) + attendance * rate

        return breakdown, attendance

    def _spend_rate(self, model: NormalizedModel, stream: SpendStream, p: int) -> Decimal:
        base = model.event.per_customer[stream]
        if self.growth.has_override(model.spend_growth, stream.value):
            return base * self.growth.factor(model.spend_growth, p, stream.value)
        return base
