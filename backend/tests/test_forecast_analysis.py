"""
Forecast Analysis Tests

Comparison modes, revised outlook, variance sign conventions and the
treatment of missing, duplicate and out-of-horizon actuals.
"""

import pytest
from decimal import Decimal
from hypothesis import given, strategies as st, settings, HealthCheck

from forecast_analysis import (
    ForecastAnalysis, PerformanceStatus, reconcile_actuals, safe_pct, overall_status,
)
from forecast_generator import ForecastGenerator
from forecast_models import (
    ActualsEntry, AssumptionSet, ComparisonMode, RevenueAssumption, CostAssumption,
)
from forecast_errors import ConfigurationError


def actual(period, revenue, cost, attendance=None):
    return ActualsEntry(
        period=period,
        revenue=Decimal(str(revenue)),
        cost=Decimal(str(cost)),
        attendance=Decimal(str(attendance)) if attendance is not None else None,
    )


@pytest.fixture
def flat_forecast(flat_baseline):
    return ForecastGenerator().generate(flat_baseline)


@pytest.fixture
def loss_forecast():
    """Two periods losing 100 each"""
    return ForecastGenerator().generate(AssumptionSet(
        revenue_streams=[RevenueAssumption(name="Sales", value=Decimal("100"))],
        costs=[CostAssumption(name="Rent", value=Decimal("200"))],
        duration=2,
    ))


@pytest.fixture
def three_months():
    return [actual(0, 1050, 620), actual(1, 1080, 610), actual(2, 1100, 630)]


@pytest.mark.golden
class TestPeriodMode:
    """Three actualized months against a flat 1000 / 600 forecast"""

    def test_revenue_variance(self, flat_forecast, three_months):
        summary = ForecastAnalysis().analyze(flat_forecast, three_months, ComparisonMode.PERIOD).summary
        revenue = summary.variances["revenue"]
        assert revenue.forecast == Decimal("3000")
        assert revenue.actual == Decimal("3230")
        assert revenue.variance == Decimal("230")
        assert revenue.variance_pct.quantize(Decimal("0.01")) == Decimal("7.67")
        assert revenue.is_favorable

    def test_cost_and_profit_variance(self, flat_forecast, three_months):
        summary = ForecastAnalysis().analyze(flat_forecast, three_months, "period").summary
        assert summary.variances["cost"].variance == Decimal("60")
        assert not summary.variances["cost"].is_favorable
        assert summary.variances["profit"].actual == Decimal("1370")
        assert summary.variances["profit"].variance == Decimal("170")
        assert summary.overall_status == PerformanceStatus.ON_TRACK

    def test_margin_variance_in_points(self, flat_forecast, three_months):
        summary = ForecastAnalysis().analyze(flat_forecast, three_months).summary
        margin = summary.variances["margin"]
        assert margin.forecast == Decimal("40")
        assert margin.variance == margin.actual - Decimal("40")

    def test_summary_counts(self, flat_forecast, three_months):
        summary = ForecastAnalysis().analyze(flat_forecast, three_months).summary
        assert summary.latest_actual_period == 2
        assert summary.periods_with_actuals == 3
        assert summary.duration == 12
        assert summary.forecast_totals["revenue"] == Decimal("12000")


@pytest.mark.golden
class TestProjectedMode:

    def test_reference_is_full_horizon(self, flat_forecast, three_months):
        summary = ForecastAnalysis().analyze(flat_forecast, three_months, ComparisonMode.PROJECTED).summary
        assert summary.variances["revenue"].forecast == Decimal("12000")
        assert summary.variances["revenue"].variance == Decimal("-8770")

    def test_revised_outlook_scales_by_latest_ratio(self, flat_forecast, three_months):
        result = ForecastAnalysis().analyze(flat_forecast, three_months, ComparisonMode.PROJECTED)
        trend = result.trend
        # actualized periods keep their actuals
        assert [t.revised_revenue for t in trend[:3]] == [Decimal("1050"), Decimal("1080"), Decimal("1100")]
        # later periods: forecast * (1100 / 1000) and cost * (630 / 600)
        for point in trend[3:]:
            assert point.revised_revenue == Decimal("1100")
            assert point.revised_cost == Decimal("630")
            assert point.revised_profit == Decimal("470")

    def test_revised_totals(self, flat_forecast, three_months):
        summary = ForecastAnalysis().analyze(flat_forecast, three_months, ComparisonMode.PROJECTED).summary
        assert summary.revised_totals["revenue"] == Decimal("13130")
        assert summary.revised_totals["cost"] == Decimal("7530")
        assert summary.revised_totals["profit"] == Decimal("5600")
        assert summary.revised_variance["revenue"] == Decimal("1130")


@pytest.mark.unit
class TestCumulativeMode:

    def test_reference_is_running_total_at_latest(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, [actual(2, 1100, 600)], "cumulative").summary
        assert summary.variances["revenue"].forecast == Decimal("3000")
        assert summary.variances["revenue"].actual == Decimal("1100")

    def test_period_mode_with_gap_uses_actualized_periods_only(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, [actual(2, 1100, 600)], "period").summary
        assert summary.variances["revenue"].forecast == Decimal("1000")


@pytest.mark.unit
class TestActualsHandling:

    def test_unactualized_periods_have_no_actual(self, flat_forecast):
        trend = ForecastAnalysis().analyze(flat_forecast, [actual(0, 0, 0)]).trend
        assert trend[0].has_actual
        assert trend[0].actual_revenue == Decimal("0")
        assert trend[1].actual_revenue is None
        assert not trend[1].has_actual
        assert trend[1].cumulative_actual_revenue is None

    def test_gap_before_latest_carries_running_total(self, flat_forecast):
        trend = ForecastAnalysis().analyze(flat_forecast, [actual(0, 1050, 600), actual(2, 1100, 600)]).trend
        assert trend[1].actual_revenue is None
        assert trend[1].cumulative_actual_revenue == Decimal("1050")
        assert trend[1].revised_revenue == Decimal("1000")
        assert trend[2].cumulative_actual_revenue == Decimal("2150")

    def test_out_of_horizon_actuals_ignored(self, flat_forecast):
        summary = ForecastAnalysis().analyze(
            flat_forecast, [actual(0, 1000, 600), actual(12, 99999, 0), actual(-1, 5, 5)]
        ).summary
        assert summary.periods_with_actuals == 1
        assert summary.actual_totals["revenue"] == Decimal("1000")

    def test_duplicate_period_keeps_later_entry(self):
        indexed = reconcile_actuals(3, [actual(1, 900, 0), actual(1, 1100, 0)])
        assert indexed[1].revenue == Decimal("1100")

    def test_no_actuals(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, []).summary
        assert summary.latest_actual_period is None
        assert summary.periods_with_actuals == 0
        assert summary.actual_totals["revenue"] == Decimal("0")
        assert summary.revised_totals == summary.forecast_totals

    def test_unknown_mode_rejected(self, flat_forecast):
        with pytest.raises(ConfigurationError):
            ForecastAnalysis().analyze(flat_forecast, [], "weekly")

    def test_analyze_model_generates_forecast(self, flat_baseline, three_months):
        result = ForecastAnalysis().analyze_model(flat_baseline, three_months)
        assert len(result.trend) == 12
        assert result.summary.variances["revenue"].variance == Decimal("230")

    def test_attendance_variance(self, event_model):
        result = ForecastAnalysis().analyze_model(event_model, [actual(0, 3700, 1600, attendance=120)])
        assert result.trend[0].attendance_variance == Decimal("20")
        assert result.summary.variances["attendance"].variance == Decimal("20")


@pytest.mark.unit
class TestZeroForecast:

    def test_zero_reference_gives_zero_percent(self):
        forecast = ForecastGenerator().generate(AssumptionSet(duration=3))
        summary = ForecastAnalysis().analyze(forecast, [actual(0, 100, 50)]).summary
        assert summary.variances["revenue"].variance == Decimal("100")
        assert summary.variances["revenue"].variance_pct == Decimal("0")
        assert summary.variances["margin"].forecast == Decimal("0")

    def test_zero_forecast_ratio_is_one(self):
        forecast = ForecastGenerator().generate(AssumptionSet(duration=3))
        trend = ForecastAnalysis().analyze(forecast, [actual(0, 100, 50)]).trend
        assert trend[2].revised_revenue == Decimal("0")

    def test_safe_pct(self):
        assert safe_pct(Decimal("5"), Decimal("0")) == Decimal("0")
        assert safe_pct(Decimal("5"), Decimal("20")) == Decimal("25")


@pytest.mark.unit
class TestStatusAndSigns:

    def test_cost_overrun_is_unfavorable(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, [actual(0, 1000, 700)]).summary
        assert summary.variances["cost"].variance == Decimal("100")
        assert not summary.variances["cost"].is_favorable

    def test_cost_saving_is_favorable(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, [actual(0, 1000, 500)]).summary
        assert summary.variances["cost"].is_favorable

    def test_revenue_shortfall_is_unfavorable(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, [actual(0, 900, 600)]).summary
        assert not summary.variances["revenue"].is_favorable

    def test_exceeding(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, [actual(0, 2000, 600)]).summary
        assert summary.overall_status == PerformanceStatus.EXCEEDING

    def test_at_risk(self, flat_forecast):
        summary = ForecastAnalysis().analyze(flat_forecast, [actual(0, 500, 600)]).summary
        assert summary.overall_status == PerformanceStatus.AT_RISK

    @pytest.mark.parametrize("pct,expected", [
        (Decimal("15"), PerformanceStatus.ON_TRACK),
        (Decimal("15.01"), PerformanceStatus.EXCEEDING),
        (Decimal("-15"), PerformanceStatus.ON_TRACK),
        (Decimal("-15.01"), PerformanceStatus.AT_RISK),
    ])
    def test_status_thresholds(self, pct, expected):
        assert overall_status(pct) == expected

    def test_shrinking_loss_is_exceeding(self, loss_forecast):
        summary = ForecastAnalysis().analyze(loss_forecast, [actual(0, 150, 200)]).summary
        assert summary.variances["profit"].forecast == Decimal("-100")
        assert summary.variances["profit"].variance == Decimal("50")
        assert summary.variances["profit"].variance_pct == Decimal("-50")
        assert summary.variances["profit"].is_favorable
        assert summary.overall_status == PerformanceStatus.EXCEEDING

    def test_deepening_loss_is_at_risk(self, loss_forecast):
        summary = ForecastAnalysis().analyze(loss_forecast, [actual(0, 50, 200)]).summary
        assert summary.variances["profit"].variance == Decimal("-50")
        assert not summary.variances["profit"].is_favorable
        assert summary.overall_status == PerformanceStatus.AT_RISK

    def test_to_dict_is_serializable(self, flat_forecast, three_months):
        data = ForecastAnalysis().analyze(flat_forecast, three_months).to_dict()
        assert data["summary"]["comparison_mode"] == "period"
        assert data["summary"]["variances"]["revenue"]["variance"] == "230"
        assert data["trend"][5]["actual_revenue"] is None


@pytest.mark.property
class TestVarianceIdentities:

    @given(
        revenues=st.lists(st.decimals(min_value=0, max_value=10000, places=2), min_size=1, max_size=12),
        mode=st.sampled_from(list(ComparisonMode)),
    )
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_variance_is_actual_minus_reference(self, flat_forecast, revenues, mode):
        actuals = [actual(i, v, 600) for i, v in enumerate(revenues)]
        summary = ForecastAnalysis().analyze(flat_forecast, actuals, mode).summary
        for metric in ("revenue", "cost", "profit"):
            v = summary.variances[metric]
            assert v.variance == v.actual - v.forecast
        assert summary.actual_totals["profit"] == summary.actual_totals["revenue"] - summary.actual_totals["cost"]
