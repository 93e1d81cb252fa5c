"""
Forecast Accuracy

Scores how well past forecasts matched recorded actuals: per-period errors
with letter grades, MAPE, accuracy trend, a confidence score, and risk flags
for poor or biased forecasting.
"""

from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Sequence, Tuple
import logging

from forecast_models import ZERO

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

# Grade thresholds on absolute percentage error
GRADE_THRESHOLDS: Tuple[Tuple[Decimal, str], ...] = (
    (Decimal("10"), "A"),
    (Decimal("20"), "B"),
    (Decimal("30"), "C"),
    (Decimal("40"), "D"),
)

TREND_WINDOW = 6
TREND_THRESHOLD = Decimal("5")
BIAS_SHARE = Decimal("0.8")


class AccuracyTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class RiskSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass
class AccuracyPeriod:
    """Forecast error of one actualized period"""
    label: str
    projected: Decimal
    actual: Decimal
    absolute_error: Decimal
    percentage_error: Decimal
    grade: str

    def to_dict(self) -> Dict:
        return {
            "label": self.label,
            "projected": str(self.projected),
            "actual": str(self.actual),
            "absolute_error": str(self.absolute_error),
            "percentage_error": str(self.percentage_error),
            "grade": self.grade,
        }


@dataclass
class RiskFlag:
    """A risk raised by the accuracy analysis"""
    category: str
    severity: RiskSeverity
    description: str
    suggested_action: str
    data_source: str
    confidence: int

    def to_dict(self) -> Dict:
        return {
            "category": self.category,
            "severity": self.severity.value,
            "description": self.description,
            "suggested_action": self.suggested_action,
            "data_source": self.data_source,
            "confidence": self.confidence,
        }


@dataclass
class ForecastAccuracy:
    """Accuracy of one metric's forecast"""
    metric: str
    periods: List[AccuracyPeriod]
    mape: Decimal
    trend: AccuracyTrend
    confidence_score: int
    project_id: Optional[str] = None
    risks: List[RiskFlag] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "project_id": self.project_id,
            "metric": self.metric,
            "periods": [p.to_dict() for p in self.periods],
            "mape": str(self.mape),
            "trend": self.trend.value,
            "confidence_score": self.confidence_score,
            "risks": [r.to_dict() for r in self.risks],
        }


# =============================================================================
# SCORING
# =============================================================================

def accuracy_grade(percentage_error: Decimal) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if percentage_error <= threshold:
            return grade
    return "F"


def calculate_mape(projections: Sequence[Decimal], actuals: Sequence[Decimal]) -> Decimal:
    """
    Mean absolute percentage error.

    Periods with a zero actual are excluded; with no usable period the MAPE
    is 0.
    """
    if len(projections) != len(actuals) or not projections:
        return ZERO

    errors = [
        abs((actual - projected) / actual) * HUNDRED
        for projected, actual in zip(projections, actuals)
        if actual != 0
    ]
    if not errors:
        return ZERO
    return sum(errors, ZERO) / len(errors)


def accuracy_trend(periods: List[AccuracyPeriod]) -> AccuracyTrend:
    """Compare the error of the older and newer half of the last six periods"""
    if len(periods) < 3:
        return AccuracyTrend.STABLE

    recent = periods[-TREND_WINDOW:]
    middle = len(recent) // 2
    first_half, second_half = recent[:middle], recent[middle:]

    first_avg = sum((p.percentage_error for p in first_half), ZERO) / len(first_half)
    second_avg = sum((p.percentage_error for p in second_half), ZERO) / len(second_half)

    if second_avg < first_avg - TREND_THRESHOLD:
        return AccuracyTrend.IMPROVING
    if second_avg > first_avg + TREND_THRESHOLD:
        return AccuracyTrend.DECLINING
    return AccuracyTrend.STABLE


def confidence_score(mape: Decimal, trend: AccuracyTrend) -> int:
    score = max(ZERO, HUNDRED - mape * 2)
    if trend == AccuracyTrend.IMPROVING:
        score = min(HUNDRED, score + 10)
    elif trend == AccuracyTrend.DECLINING:
        score = max(ZERO, score - 15)
    return int(score.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def identify_accuracy_risks(accuracy: ForecastAccuracy) -> List[RiskFlag]:
    risks: List[RiskFlag] = []
    metric = accuracy.metric

    if accuracy.mape > 30:
        risks.append(RiskFlag(
            category="financial_unit_economics",
            severity=RiskSeverity.HIGH,
            description=f"Poor forecast accuracy ({accuracy.mape:.1f}% MAPE) for {metric}",
            suggested_action="Review forecasting methodology and assumptions",
            data_source="forecast_accuracy_analysis",
            confidence=90,
        ))
    elif accuracy.mape > 20:
        risks.append(RiskFlag(
            category="financial_unit_economics",
            severity=RiskSeverity.MEDIUM,
            description=f"Moderate forecast accuracy issues ({accuracy.mape:.1f}% MAPE) for {metric}",
            suggested_action="Monitor forecast assumptions and adjust if needed",
            data_source="forecast_accuracy_analysis",
            confidence=85,
        ))

    if accuracy.trend == AccuracyTrend.DECLINING:
        risks.append(RiskFlag(
            category="execution_delivery",
            severity=RiskSeverity.MEDIUM,
            description=f"Forecast accuracy is declining for {metric}",
            suggested_action="Investigate root causes of declining prediction reliability",
            data_source="forecast_trend_analysis",
            confidence=80,
        ))

    total = len(accuracy.periods)
    over = sum(1 for p in accuracy.periods if p.projected > p.actual)
    under = sum(1 for p in accuracy.periods if p.projected < p.actual)

    if total and over > total * BIAS_SHARE:
        risks.append(RiskFlag(
            category="strategic_scaling",
            severity=RiskSeverity.MEDIUM,
            description=f"Consistent overestimation of {metric} ({over * 100 // total}% of periods)",
            suggested_action="Adjust forecasting to be more conservative",
            data_source="forecast_bias_analysis",
            confidence=85,
        ))
    elif total and under > total * BIAS_SHARE:
        risks.append(RiskFlag(
            category="strategic_scaling",
            severity=RiskSeverity.LOW,
            description=f"Consistent underestimation of {metric} ({under * 100 // total}% of periods)",
            suggested_action="Review if growth opportunities are being missed",
            data_source="forecast_bias_analysis",
            confidence=75,
        ))

    return risks


def score_periods(rows: Sequence[Tuple[str, Decimal, Decimal]]) -> List[AccuracyPeriod]:
    """Build accuracy periods from (label, projected, actual) rows"""
    periods = []
    for label, projected, actual in rows:
        absolute_error = abs(actual - projected)
        percentage_error = absolute_error / abs(actual) * HUNDRED if actual != 0 else ZERO
        periods.append(AccuracyPeriod(
            label=label,
            projected=projected,
            actual=actual,
            absolute_error=absolute_error,
            percentage_error=percentage_error,
            grade=accuracy_grade(percentage_error),
        ))
    return periods


def calculate_forecast_accuracy(
    metric: str,
    rows: Sequence[Tuple[str, Decimal, Decimal]],
    project_id: Optional[str] = None,
) -> ForecastAccuracy:
    """Full accuracy report for one metric"""
    periods = score_periods(rows)
    mape = calculate_mape([p.projected for p in periods], [p.actual for p in periods])
    trend = accuracy_trend(periods)

    accuracy = ForecastAccuracy(
        metric=metric,
        periods=periods,
        mape=mape,
        trend=trend,
        confidence_score=confidence_score(mape, trend),
        project_id=project_id,
    )
    accuracy.risks = identify_accuracy_risks(accuracy)

    logger.debug(f"Forecast accuracy for {metric}: MAPE={mape:.2f} trend={trend.value} risks={len(accuracy.risks)}")
    return accuracy


def assess_forecast_accuracy(trend_points, metric: str = "revenue", project_id: Optional[str] = None) -> ForecastAccuracy:
    """
    Accuracy of one metric ("revenue", "cost" or "profit") over the actualized
    points of an analysis trend.
    """
    if metric not in ("revenue", "cost", "profit"):
        raise ValueError(f"Unsupported accuracy metric: {metric}")

    rows = [
        (point.label, getattr(point, f"forecast_{metric}"), getattr(point, f"actual_{metric}"))
        for point in trend_points
        if point.has_actual
    ]
    return calculate_forecast_accuracy(metric, rows, project_id=project_id)
