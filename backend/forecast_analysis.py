"""
Forecast Analysis

Reconciles a generated forecast against recorded actuals. Produces a summary
(forecast, actual and revised totals with variances) and a per-period trend
under one of three comparison modes:

- period:     actual-to-date vs. forecast summed over the actualized periods
- cumulative: actual-to-date vs. cumulative forecast at the latest actual period
- projected:  actual-to-date vs. the full-horizon forecast
"""

from decimal import Decimal
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Iterable, Union
import logging

from forecast_errors import ConfigurationError, PreconditionError
from forecast_models import (
    ActualsEntry, AssumptionSet, ComparisonMode, PeriodRecord, parse_enum, ZERO,
)
from forecast_generator import ForecastGenerator

logger = logging.getLogger(__name__)

ONE = Decimal("1")
HUNDRED = Decimal("100")

# Profit variance (percent) beyond which a model is no longer on track
STATUS_THRESHOLD_PCT = Decimal("15")

METRICS = ("revenue", "cost", "profit", "attendance")


class PerformanceStatus(str, Enum):
    ON_TRACK = "on_track"
    EXCEEDING = "exceeding"
    AT_RISK = "at_risk"


def safe_pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100, or 0 when the denominator is 0"""
    if denominator == 0:
        return ZERO
    return numerator / denominator * HUNDRED


def is_favorable(metric: str, variance: Decimal) -> bool:
    # Spending more than forecast is unfavorable; for every other metric more is better
    if metric == "cost":
        return variance <= 0
    return variance >= 0


def _str_or_none(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass
class MetricVariance:
    """Actual vs. reference forecast for one metric"""
    metric: str
    forecast: Decimal
    actual: Decimal
    variance: Decimal
    variance_pct: Decimal
    is_favorable: bool

    @classmethod
    def compute(cls, metric: str, forecast: Decimal, actual: Decimal) -> "MetricVariance":
        variance = actual - forecast
        return cls(
            metric=metric,
            forecast=forecast,
            actual=actual,
            variance=variance,
            variance_pct=safe_pct(variance, forecast),
            is_favorable=is_favorable(metric, variance),
        )

    def to_dict(self) -> Dict:
        return {
            "metric": self.metric,
            "forecast": str(self.forecast),
            "actual": str(self.actual),
            "variance": str(self.variance),
            "variance_pct": str(self.variance_pct),
            "is_favorable": self.is_favorable,
        }


@dataclass
class TrendPoint:
    """
    One period of the merged forecast / actual view.

    Actual fields are None for periods that have not been actualized; a
    recorded zero stays zero.
    """
    period: int
    label: str

    forecast_revenue: Decimal
    forecast_cost: Decimal
    forecast_profit: Decimal
    forecast_attendance: Optional[Decimal]

    cumulative_forecast_revenue: Decimal
    cumulative_forecast_cost: Decimal
    cumulative_forecast_profit: Decimal

    revised_revenue: Decimal
    revised_cost: Decimal
    revised_profit: Decimal
    revised_attendance: Optional[Decimal] = None

    actual_revenue: Optional[Decimal] = None
    actual_cost: Optional[Decimal] = None
    actual_profit: Optional[Decimal] = None
    actual_attendance: Optional[Decimal] = None

    cumulative_actual_revenue: Optional[Decimal] = None
    cumulative_actual_cost: Optional[Decimal] = None
    cumulative_actual_profit: Optional[Decimal] = None

    revenue_variance: Optional[Decimal] = None
    cost_variance: Optional[Decimal] = None
    profit_variance: Optional[Decimal] = None
    attendance_variance: Optional[Decimal] = None

    @property
    def has_actual(self) -> bool:
        return self.actual_revenue is not None

    def to_dict(self) -> Dict:
        result = {"period": self.period, "label": self.label, "has_actual": self.has_actual}
        for name in (
            "forecast_revenue", "forecast_cost", "forecast_profit", "forecast_attendance",
            "cumulative_forecast_revenue", "cumulative_forecast_cost", "cumulative_forecast_profit",
            "revised_revenue", "revised_cost", "revised_profit", "revised_attendance",
            "actual_revenue", "actual_cost", "actual_profit", "actual_attendance",
            "cumulative_actual_revenue", "cumulative_actual_cost", "cumulative_actual_profit",
            "revenue_variance", "cost_variance", "profit_variance", "attendance_variance",
        ):
            result[name] = _str_or_none(getattr(self, name))
        return result


@dataclass
class AnalysisSummary:
    """Aggregate comparison of a forecast and its actuals"""
    comparison_mode: ComparisonMode
    duration: int
    latest_actual_period: Optional[int]
    periods_with_actuals: int

    forecast_totals: Dict[str, Decimal]       # full horizon
    period_forecast: Dict[str, Decimal]       # summed over actualized periods
    cumulative_forecast: Dict[str, Decimal]   # running total at the latest actual period
    actual_totals: Dict[str, Decimal]
    revised_totals: Dict[str, Decimal]
    revised_variance: Dict[str, Decimal]      # revised - full-horizon forecast

    variances: Dict[str, MetricVariance] = field(default_factory=dict)
    margins: Dict[str, Decimal] = field(default_factory=dict)
    overall_status: PerformanceStatus = PerformanceStatus.ON_TRACK

    @property
    def forecast_reference(self) -> Dict[str, Decimal]:
        return {metric: v.forecast for metric, v in self.variances.items()}

    def to_dict(self) -> Dict:
        def dump(values: Dict[str, Decimal]) -> Dict[str, str]:
            return {k: str(v) for k, v in values.items()}

        return {
            "comparison_mode": self.comparison_mode.value,
            "duration": self.duration,
            "latest_actual_period": self.latest_actual_period,
            "periods_with_actuals": self.periods_with_actuals,
            "forecast_totals": dump(self.forecast_totals),
            "period_forecast": dump(self.period_forecast),
            "cumulative_forecast": dump(self.cumulative_forecast),
            "actual_totals": dump(self.actual_totals),
            "revised_totals": dump(self.revised_totals),
            "revised_variance": dump(self.revised_variance),
            "variances": {k: v.to_dict() for k, v in self.variances.items()},
            "margins": dump(self.margins),
            "overall_status": self.overall_status.value,
        }


@dataclass
class AnalysisResult:
    summary: AnalysisSummary
    trend: List[TrendPoint]

    def to_dict(self) -> Dict:
        return {
            "summary": self.summary.to_dict(),
            "trend": [point.to_dict() for point in self.trend],
        }


# =============================================================================
# RECONCILIATION
# =============================================================================

def reconcile_actuals(duration: int, actuals: Iterable[ActualsEntry]) -> Dict[int, ActualsEntry]:
    """
    Index actuals by period.

    Entries outside the forecast horizon are dropped; when a period is
    reported twice the later entry wins.
    """
    by_period: Dict[int, ActualsEntry] = {}
    for entry in actuals or []:
        if entry.period < 0 or entry.period >= duration:
            logger.warning(f"Ignoring actuals for period {entry.period}: outside the {duration}-period horizon")
            continue
        if entry.period in by_period:
            logger.warning(f"Duplicate actuals for period {entry.period}; keeping the later entry")
        by_period[entry.period] = entry
    return by_period


def _ratio(actual: Optional[Decimal], forecast: Optional[Decimal]) -> Decimal:
    if actual is None or forecast is None or forecast == 0:
        return ONE
    return actual / forecast


class ForecastAnalysis:
    """Forecast vs. actuals reconciliation"""

    def __init__(self, generator: Optional[ForecastGenerator] = None):
        self.generator = generator or ForecastGenerator()

    def analyze_model(
        self,
        model: AssumptionSet,
        actuals: Iterable[ActualsEntry],
        comparison_mode: Union[ComparisonMode, str] = ComparisonMode.PERIOD,
    ) -> AnalysisResult:
        """Generate the forecast for a model and analyze it against actuals"""
        return self.analyze(self.generator.generate(model), actuals, comparison_mode)

    def analyze(
        self,
        forecast: List[PeriodRecord],
        actuals: Iterable[ActualsEntry],
        comparison_mode: Union[ComparisonMode, str] = ComparisonMode.PERIOD,
    ) -> AnalysisResult:
        """
        Analyze a forecast against actuals.

        1. Index actuals by period (out-of-horizon entries dropped)
        2. Build the per-period trend with revised outlook values
        3. Aggregate totals and pick the reference for the comparison mode
        4. Compute variances, favourability and overall status
        """
        if forecast is None:
            raise PreconditionError("A forecast is required for analysis")
        mode = parse_enum(ComparisonMode, comparison_mode, ComparisonMode.PERIOD)

        by_period = reconcile_actuals(len(forecast), actuals)
        latest = max(by_period) if by_period else None

        trend = self._build_trend(forecast, by_period, latest)
        summary = self._summarize(forecast, trend, by_period, latest, mode)

        logger.info(
            f"Analyzed {len(forecast)}-period forecast ({mode.value}): "
            f"{summary.periods_with_actuals} actualized, latest={latest}, status={summary.overall_status.value}"
        )
        return AnalysisResult(summary=summary, trend=trend)

    def _build_trend(
        self,
        forecast: List[PeriodRecord],
        by_period: Dict[int, ActualsEntry],
        latest: Optional[int],
    ) -> List[TrendPoint]:
        revenue_ratio = cost_ratio = attendance_ratio = ONE
        if latest is not None:
            last_actual = by_period[latest]
            last_forecast = forecast[latest]
            revenue_ratio = _ratio(last_actual.revenue, last_forecast.revenue)
            cost_ratio = _ratio(last_actual.cost, last_forecast.cost)
            attendance_ratio = _ratio(last_actual.attendance, last_forecast.attendance)

        trend: List[TrendPoint] = []
        running_revenue = running_cost = running_profit = ZERO

        for record in forecast:
            p = record.period
            actual = by_period.get(p)

            if latest is not None and p <= latest:
                revised_revenue = actual.revenue if actual else record.revenue
                revised_cost = actual.cost if actual else record.cost
                if actual is not None and actual.attendance is not None:
                    revised_attendance = actual.attendance
                else:
                    revised_attendance = record.attendance
            else:
                revised_revenue = record.revenue * revenue_ratio
                revised_cost = record.cost * cost_ratio
                revised_attendance = (
                    record.attendance * attendance_ratio if record.attendance is not None else None
                )

            point = TrendPoint(
                period=p,
                label=record.label,
                forecast_revenue=record.revenue,
                forecast_cost=record.cost,
                forecast_profit=record.profit,
                forecast_attendance=record.attendance,
                cumulative_forecast_revenue=record.cumulative_revenue,
                cumulative_forecast_cost=record.cumulative_cost,
                cumulative_forecast_profit=record.cumulative_profit,
                revised_revenue=revised_revenue,
                revised_cost=revised_cost,
                revised_profit=revised_revenue - revised_cost,
                revised_attendance=revised_attendance,
            )

            if actual is not None:
                running_revenue += actual.revenue
                running_cost += actual.cost
                running_profit += actual.profit
                point.actual_revenue = actual.revenue
                point.actual_cost = actual.cost
                point.actual_profit = actual.profit
                point.actual_attendance = actual.attendance
                point.revenue_variance = actual.revenue - record.revenue
                point.cost_variance = actual.cost - record.cost
                point.profit_variance = actual.profit - record.profit
                if actual.attendance is not None and record.attendance is not None:
                    point.attendance_variance = actual.attendance - record.attendance

            if latest is not None and p <= latest:
                point.cumulative_actual_revenue = running_revenue
                point.cumulative_actual_cost = running_cost
                point.cumulative_actual_profit = running_profit

            trend.append(point)

        return trend

    def _summarize(
        self,
        forecast: List[PeriodRecord],
        trend: List[TrendPoint],
        by_period: Dict[int, ActualsEntry],
        latest: Optional[int],
        mode: ComparisonMode,
    ) -> AnalysisSummary:
        def attendance_of(value: Optional[Decimal]) -> Decimal:
            return value if value is not None else ZERO

        forecast_totals = {
            "revenue": sum((r.revenue for r in forecast), ZERO),
            "cost": sum((r.cost for r in forecast), ZERO),
            "profit": sum((r.profit for r in forecast), ZERO),
            "attendance": sum((attendance_of(r.attendance) for r in forecast), ZERO),
        }

        actualized = [forecast[p] for p in sorted(by_period)]
        period_forecast = {
            "revenue": sum((r.revenue for r in actualized), ZERO),
            "cost": sum((r.cost for r in actualized), ZERO),
            "profit": sum((r.profit for r in actualized), ZERO),
            "attendance": sum((attendance_of(r.attendance) for r in actualized), ZERO),
        }

        if latest is not None:
            at_latest = forecast[latest]
            cumulative_forecast = {
                "revenue": at_latest.cumulative_revenue,
                "cost": at_latest.cumulative_cost,
                "profit": at_latest.cumulative_profit,
                "attendance": sum((attendance_of(r.attendance) for r in forecast[: latest + 1]), ZERO),
            }
        else:
            cumulative_forecast = {metric: ZERO for metric in METRICS}

        entries = list(by_period.values())
        actual_totals = {
            "revenue": sum((e.revenue for e in entries), ZERO),
            "cost": sum((e.cost for e in entries), ZERO),
            "profit": sum((e.profit for e in entries), ZERO),
            "attendance": sum((attendance_of(e.attendance) for e in entries), ZERO),
        }

        revised_totals = {
            "revenue": sum((t.revised_revenue for t in trend), ZERO),
            "cost": sum((t.revised_cost for t in trend), ZERO),
            "profit": sum((t.revised_profit for t in trend), ZERO),
            "attendance": sum((attendance_of(t.revised_attendance) for t in trend), ZERO),
        }
        revised_variance = {metric: revised_totals[metric] - forecast_totals[metric] for metric in METRICS}

        if mode == ComparisonMode.PERIOD:
            reference = period_forecast
        elif mode == ComparisonMode.CUMULATIVE:
            reference = cumulative_forecast
        elif mode == ComparisonMode.PROJECTED:
            reference = forecast_totals
        else:
            raise ConfigurationError(f"Unsupported comparison mode: {mode!r}")

        variances = {
            metric: MetricVariance.compute(metric, reference[metric], actual_totals[metric])
            for metric in METRICS
        }

        reference_margin = safe_pct(reference["profit"], reference["revenue"])
        actual_margin = safe_pct(actual_totals["profit"], actual_totals["revenue"])
        variances["margin"] = MetricVariance.compute("margin", reference_margin, actual_margin)

        margins = {
            "forecast": safe_pct(forecast_totals["profit"], forecast_totals["revenue"]),
            "reference": reference_margin,
            "actual": actual_margin,
            "revised": safe_pct(revised_totals["profit"], revised_totals["revenue"]),
        }

        return AnalysisSummary(
            comparison_mode=mode,
            duration=len(forecast),
            latest_actual_period=latest,
            periods_with_actuals=len(by_period),
            forecast_totals=forecast_totals,
            period_forecast=period_forecast,
            cumulative_forecast=cumulative_forecast,
            actual_totals=actual_totals,
            revised_totals=revised_totals,
            revised_variance=revised_variance,
            variances=variances,
            margins=margins,
            overall_status=overall_status(profit_status_pct(variances["profit"])),
        )


def profit_status_pct(profit: MetricVariance) -> Decimal:
    # Relative to |reference profit|; a shrinking loss is an improvement
    return safe_pct(profit.variance, abs(profit.forecast))


def overall_status(profit_variance_pct: Decimal) -> PerformanceStatus:
    if profit_variance_pct > STATUS_THRESHOLD_PCT:
        return PerformanceStatus.EXCEEDING
    if profit_variance_pct < -STATUS_THRESHOLD_PCT:
        return PerformanceStatus.AT_RISK
    return PerformanceStatus.ON_TRACK
