"""
Scenario Comparison

Summary metrics for a generated forecast and the comparison of a what-if
scenario against its baseline.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from typing import Optional, List, Dict
import logging

from forecast_models import AssumptionSet, PeriodRecord, ScenarioParameterDeltas, ZERO
from forecast_generator import ForecastGenerator
from scenario_delta_applier import ScenarioDeltaApplier

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def _pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return ZERO
    return numerator / denominator * HUNDRED


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass
class ForecastSummaryMetrics:
    """Headline numbers of one forecast"""
    total_revenue: Decimal
    total_cost: Decimal
    total_profit: Decimal
    profit_margin: Decimal
    average_revenue: Decimal
    average_cost: Decimal
    average_profit: Decimal
    break_even_period: Optional[int] = None
    break_even_label: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "total_revenue": str(self.total_revenue),
            "total_cost": str(self.total_cost),
            "total_profit": str(self.total_profit),
            "profit_margin": str(self.profit_margin),
            "average_revenue": str(self.average_revenue),
            "average_cost": str(self.average_cost),
            "average_profit": str(self.average_profit),
            "break_even_period": self.break_even_period,
            "break_even_label": self.break_even_label,
        }


@dataclass
class PeriodComparison:
    period: int
    label: str
    baseline_revenue: Decimal
    scenario_revenue: Decimal
    baseline_profit: Decimal
    scenario_profit: Decimal
    baseline_cumulative_profit: Decimal
    scenario_cumulative_profit: Decimal

    def to_dict(self) -> Dict:
        return {
            "period": self.period,
            "label": self.label,
            "baseline_revenue": str(self.baseline_revenue),
            "scenario_revenue": str(self.scenario_revenue),
            "baseline_profit": str(self.baseline_profit),
            "scenario_profit": str(self.scenario_profit),
            "baseline_cumulative_profit": str(self.baseline_cumulative_profit),
            "scenario_cumulative_profit": str(self.scenario_cumulative_profit),
        }


@dataclass
class ScenarioComparison:
    """Scenario minus baseline"""
    baseline: ForecastSummaryMetrics
    scenario: ForecastSummaryMetrics
    revenue_delta: Decimal
    revenue_delta_pct: Decimal
    cost_delta: Decimal
    cost_delta_pct: Decimal
    profit_delta: Decimal
    profit_delta_pct: Decimal
    margin_delta: Decimal  # percentage points
    break_even_delta: int
    summary: str = ""
    periods: List[PeriodComparison] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "baseline": self.baseline.to_dict(),
            "scenario": self.scenario.to_dict(),
            "revenue_delta": str(self.revenue_delta),
            "revenue_delta_pct": str(self.revenue_delta_pct),
            "cost_delta": str(self.cost_delta),
            "cost_delta_pct": str(self.cost_delta_pct),
            "profit_delta": str(self.profit_delta),
            "profit_delta_pct": str(self.profit_delta_pct),
            "margin_delta": str(self.margin_delta),
            "break_even_delta": self.break_even_delta,
            "summary": self.summary,
            "periods": [p.to_dict() for p in self.periods],
        }


@dataclass
class ScenarioPreview:
    """A scenario applied to its baseline, with both forecasts"""
    assumptions: AssumptionSet
    baseline_forecast: List[PeriodRecord]
    scenario_forecast: List[PeriodRecord]
    comparison: ScenarioComparison

    def to_dict(self) -> Dict:
        return {
            "assumptions": self.assumptions.to_dict(),
            "baseline_forecast": [r.to_dict() for r in self.baseline_forecast],
            "scenario_forecast": [r.to_dict() for r in self.scenario_forecast],
            "comparison": self.comparison.to_dict(),
        }


# =============================================================================
# METRICS
# =============================================================================

def summarize_forecast(records: List[PeriodRecord]) -> ForecastSummaryMetrics:
    """Totals, margin, averages and the first period with non-negative cumulative profit"""
    if not records:
        return ForecastSummaryMetrics(
            total_revenue=ZERO, total_cost=ZERO, total_profit=ZERO, profit_margin=ZERO,
            average_revenue=ZERO, average_cost=ZERO, average_profit=ZERO,
        )

    total_revenue = sum((r.revenue for r in records), ZERO)
    total_cost = sum((r.cost for r in records), ZERO)
    total_profit = sum((r.profit for r in records), ZERO)
    count = len(records)

    break_even = next((r for r in records if r.cumulative_profit >= 0), None)

    return ForecastSummaryMetrics(
        total_revenue=total_revenue,
        total_cost=total_cost,
        total_profit=total_profit,
        profit_margin=_pct(total_profit, total_revenue),
        average_revenue=total_revenue / count,
        average_cost=total_cost / count,
        average_profit=total_profit / count,
        break_even_period=break_even.period if break_even else None,
        break_even_label=break_even.label if break_even else None,
    )


def break_even_delta(baseline: Optional[int], scenario: Optional[int]) -> int:
    """
    Shift of the break-even period.

    When only the scenario breaks even the result is -scenario; when only the
    baseline does it is +baseline.
    """
    if baseline is not None and scenario is not None:
        return scenario - baseline
    if scenario is not None:
        return -scenario
    if baseline is not None:
        return baseline
    return 0


def compare_scenarios(
    baseline_records: List[PeriodRecord],
    scenario_records: List[PeriodRecord],
) -> ScenarioComparison:
    """Compare a scenario forecast against its baseline forecast"""
    base = summarize_forecast(baseline_records)
    scen = summarize_forecast(scenario_records)

    revenue_delta = scen.total_revenue - base.total_revenue
    cost_delta = scen.total_cost - base.total_cost
    profit_delta = scen.total_profit - base.total_profit

    periods = [
        PeriodComparison(
            period=b.period,
            label=b.label,
            baseline_revenue=b.revenue,
            scenario_revenue=s.revenue,
            baseline_profit=b.profit,
            scenario_profit=s.profit,
            baseline_cumulative_profit=b.cumulative_profit,
            scenario_cumulative_profit=s.cumulative_profit,
        )
        for b, s in zip(baseline_records, scenario_records)
    ]

    comparison = ScenarioComparison(
        baseline=base,
        scenario=scen,
        revenue_delta=revenue_delta,
        revenue_delta_pct=_pct(revenue_delta, base.total_revenue),
        cost_delta=cost_delta,
        cost_delta_pct=_pct(cost_delta, base.total_cost),
        profit_delta=profit_delta,
        profit_delta_pct=_pct(profit_delta, base.total_profit),
        margin_delta=scen.profit_margin - base.profit_margin,
        break_even_delta=break_even_delta(base.break_even_period, scen.break_even_period),
        periods=periods,
    )
    comparison.summary = _generate_comparison_summary(comparison)
    return comparison


def _generate_comparison_summary(comparison: ScenarioComparison) -> str:
    """Generate human-readable comparison summary."""
    parts = []

    if comparison.revenue_delta != 0:
        direction = "higher" if comparison.revenue_delta > 0 else "lower"
        parts.append(f"Revenue is ${abs(comparison.revenue_delta):,.0f} {direction}")

    if comparison.cost_delta != 0:
        direction = "increase" if comparison.cost_delta > 0 else "decrease"
        parts.append(f"Costs {direction} by ${abs(comparison.cost_delta):,.0f}")

    if comparison.profit_delta != 0:
        direction = "improves" if comparison.profit_delta > 0 else "falls"
        parts.append(f"Profit {direction} by ${abs(comparison.profit_delta):,.0f}")

    base_label = comparison.baseline.break_even_label
    scen_label = comparison.scenario.break_even_label
    if base_label != scen_label:
        parts.append(f"Break-even moves from {base_label or 'never'} to {scen_label or 'never'}")

    return ". ".join(parts) if parts else "No significant differences"


# =============================================================================
# PREVIEW
# =============================================================================

class ScenarioRunner:
    """Applies deltas to a baseline and forecasts both sides"""

    def __init__(
        self,
        applier: Optional[ScenarioDeltaApplier] = None,
        generator: Optional[ForecastGenerator] = None,
    ):
        self.applier = applier or ScenarioDeltaApplier()
        self.generator = generator or ForecastGenerator()

    def preview(
        self,
        baseline: AssumptionSet,
        deltas: Optional[ScenarioParameterDeltas] = None,
    ) -> ScenarioPreview:
        scenario = self.applier.apply(baseline, deltas)
        baseline_forecast = self.generator.generate(baseline)
        scenario_forecast = self.generator.generate(scenario)
        comparison = compare_scenarios(baseline_forecast, scenario_forecast)
        logger.info(f"Scenario preview: {comparison.summary}")
        return ScenarioPreview(
            assumptions=scenario,
            baseline_forecast=baseline_forecast,
            scenario_forecast=scenario_forecast,
            comparison=comparison,
        )
