"""
Scenario Delta Applier Tests

Idempotence of zero deltas, non-destructiveness, and one regression test per
delta type locking in its composition rule.
"""

import copy
import pytest
from decimal import Decimal
from hypothesis import given, strategies as st, settings, HealthCheck

from scenario_delta_applier import ScenarioDeltaApplier, apply_line_delta
from forecast_generator import ForecastGenerator
from forecast_models import (
    AssumptionSet, RevenueAssumption, CostAssumption, LineKind, MarketingSetup,
    MarketingChannel, AllocationMode, ScenarioParameterDeltas, DeltaType, SpendStream,
    GrowthSpec, GrowthKind, EventMetadata,
)
from forecast_errors import ConfigurationError, PreconditionError


def deltas(**kwargs):
    return ScenarioParameterDeltas(**{k: Decimal(str(v)) if isinstance(v, (int, float)) else v
                                      for k, v in kwargs.items()})


@pytest.mark.unit
class TestIdempotenceAndPurity:

    def test_zero_deltas_reproduce_baseline(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, ScenarioParameterDeltas())
        assert result == event_model
        assert result.to_dict() == event_model.to_dict()

    def test_none_deltas_are_zero_deltas(self, flat_baseline):
        assert ScenarioDeltaApplier().apply(flat_baseline, None) == flat_baseline

    def test_missing_baseline_rejected(self):
        with pytest.raises(PreconditionError):
            ScenarioDeltaApplier().apply(None, ScenarioParameterDeltas())

    def test_result_shares_no_nested_objects(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, ScenarioParameterDeltas())
        assert result is not event_model
        assert result.revenue_streams is not event_model.revenue_streams
        assert all(a is not b for a, b in zip(result.revenue_streams, event_model.revenue_streams))
        assert all(a is not b for a, b in zip(result.costs, event_model.costs))
        assert result.growth_model is not event_model.growth_model
        assert result.metadata is not event_model.metadata
        assert result.metadata.per_customer is not event_model.metadata.per_customer
        assert result.metadata.costs is not event_model.metadata.costs
        assert result.metadata.costs.cogs_percent is not event_model.metadata.costs.cogs_percent
        assert result.metadata.growth is not event_model.metadata.growth
        assert result.metadata.growth.spend_growth_rates is not event_model.metadata.growth.spend_growth_rates
        assert result.marketing is not event_model.marketing
        assert all(a is not b for a, b in zip(result.marketing.channels, event_model.marketing.channels))

    def test_baseline_never_mutated(self, event_model):
        before = copy.deepcopy(event_model)
        ScenarioDeltaApplier().apply(event_model, deltas(
            marketing_spend_percent=50, pricing_percent=10, attendance_growth_percent=3,
            cogs_multiplier=20, ticket_price_delta=5, ticket_price_delta_type=DeltaType.ABSOLUTE,
        ))
        assert event_model == before

    def test_successive_applications_are_independent(self, event_model):
        applier = ScenarioDeltaApplier()
        applier.apply(event_model, deltas(pricing_percent=50))
        second = applier.apply(event_model, deltas(pricing_percent=10))
        assert second.metadata.per_customer[SpendStream.TICKET] == Decimal("22.0")


@pytest.mark.regression
class TestCompositionRules:
    """One test per delta type"""

    def test_marketing_global_then_channel(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, ScenarioParameterDeltas(
            marketing_spend_percent=Decimal("10"),
            marketing_spend_by_channel={"social": Decimal("50")},
        ))
        budgets = {c.id: c.budget for c in result.marketing.channels}
        assert budgets["social"] == Decimal("660")  # 400 * 1.1 * 1.5
        assert budgets["print"] == Decimal("330")

    def test_marketing_high_level_budget_scaled(self):
        baseline = AssumptionSet(marketing=MarketingSetup(
            allocation_mode=AllocationMode.HIGH_LEVEL, total_budget=Decimal("1000"),
        ))
        result = ScenarioDeltaApplier().apply(baseline, deltas(marketing_spend_percent=-25))
        assert result.marketing.total_budget == Decimal("750")

    def test_marketing_delta_repairs_none_mode(self):
        baseline = AssumptionSet(marketing=MarketingSetup(
            allocation_mode=AllocationMode.NONE, total_budget=Decimal("1000"),
        ))
        result = ScenarioDeltaApplier().apply(baseline, deltas(marketing_spend_percent=10))
        assert result.marketing.allocation_mode == AllocationMode.HIGH_LEVEL

    def test_marketing_delta_repairs_none_mode_with_channels(self):
        baseline = AssumptionSet(marketing=MarketingSetup(
            allocation_mode=AllocationMode.NONE,
            channels=[MarketingChannel(id="x", budget=Decimal("100"))],
        ))
        result = ScenarioDeltaApplier().apply(
            baseline, ScenarioParameterDeltas(marketing_spend_by_channel={"x": Decimal("20")})
        )
        assert result.marketing.allocation_mode == AllocationMode.CHANNELS
        assert result.marketing.channels[0].budget == Decimal("120")

    def test_marketing_delta_without_setup_creates_valid_mode(self, flat_baseline):
        result = ScenarioDeltaApplier().apply(flat_baseline, deltas(marketing_spend_percent=10))
        assert result.marketing.allocation_mode != AllocationMode.NONE

    def test_pricing_is_multiplicative(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, deltas(pricing_percent=10))
        rates = result.metadata.per_customer
        assert rates[SpendStream.TICKET] == Decimal("22.0")
        assert rates[SpendStream.FB] == Decimal("11.0")
        assert rates[SpendStream.MERCHANDISE] == Decimal("5.5")
        streams = {s.name: s.value for s in result.revenue_streams}
        assert streams["Sponsorship"] == Decimal("220.0")
        # per-customer driven lines are left to the per-customer rates
        assert streams["Ticket Sales"] == Decimal("0")

    def test_ticket_delta_percent(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, deltas(ticket_price_delta=25))
        assert result.metadata.per_customer[SpendStream.TICKET] == Decimal("25.00")

    def test_ticket_delta_absolute(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, ScenarioParameterDeltas(
            ticket_price_delta=Decimal("5"), ticket_price_delta_type=DeltaType.ABSOLUTE,
        ))
        assert result.metadata.per_customer[SpendStream.TICKET] == Decimal("25")

    def test_fb_delta_absolute_after_pricing(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, ScenarioParameterDeltas(
            pricing_percent=Decimal("10"),
            fb_spend_delta=Decimal("2"),
            fb_spend_delta_type=DeltaType.ABSOLUTE,
        ))
        assert result.metadata.per_customer[SpendStream.FB] == Decimal("13.0")

    def test_merch_delta_percent(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, deltas(merch_spend_delta=-20))
        assert result.metadata.per_customer[SpendStream.MERCHANDISE] == Decimal("4.00")

    def test_line_delta_targets_named_stream_without_event_metadata(self):
        baseline = AssumptionSet(revenue_streams=[
            RevenueAssumption(name="Ticket Sales", value=Decimal("1000")),
            RevenueAssumption(name="Other", value=Decimal("1000")),
        ])
        result = ScenarioDeltaApplier().apply(baseline, ScenarioParameterDeltas(
            ticket_price_delta=Decimal("50"), ticket_price_delta_type=DeltaType.ABSOLUTE,
        ))
        streams = {s.name: s.value for s in result.revenue_streams}
        assert streams == {"Ticket Sales": Decimal("1050"), "Other": Decimal("1000")}

    def test_attendance_growth_is_additive(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, deltas(attendance_growth_percent=3))
        # 5% baseline + 3 points, not 5% * 1.03
        assert result.metadata.growth.attendance_growth_rate == Decimal("8")

    def test_attendance_delta_enables_spend_growth(self, event_model):
        assert event_model.metadata.growth.use_customer_spend_growth is False
        result = ScenarioDeltaApplier().apply(event_model, deltas(attendance_growth_percent=1))
        assert result.metadata.growth.use_customer_spend_growth is True

    def test_attendance_delta_on_generic_model_is_ignored(self, flat_baseline):
        result = ScenarioDeltaApplier().apply(flat_baseline, deltas(attendance_growth_percent=5))
        assert result == flat_baseline

    def test_attendance_delta_shows_on_seasonal_event_model(self):
        baseline = AssumptionSet(
            growth_model=GrowthSpec(kind=GrowthKind.SEASONAL, seasonal_factors=[Decimal("1"), Decimal("1.5")]),
            metadata=EventMetadata(
                duration=3,
                initial_attendance=Decimal("100"),
                per_customer={SpendStream.TICKET: Decimal("10")},
            ),
        )
        scenario = ScenarioDeltaApplier().apply(baseline, deltas(attendance_growth_percent=10))
        generator = ForecastGenerator()
        assert [r.attendance for r in generator.generate(baseline)] == [Decimal("100")] * 3
        assert [r.attendance for r in generator.generate(scenario)] == [
            Decimal("100"), Decimal("110"), Decimal("121"),
        ]

    def test_attendance_delta_down_to_total_decline(self):
        baseline = AssumptionSet(
            growth_model=GrowthSpec(kind=GrowthKind.EXPONENTIAL, rate=Decimal("0")),
            metadata=EventMetadata(
                duration=2,
                initial_attendance=Decimal("50"),
                per_customer={SpendStream.TICKET: Decimal("10")},
            ),
        )
        scenario = ScenarioDeltaApplier().apply(baseline, deltas(attendance_growth_percent=-100))
        records = ForecastGenerator().generate(scenario)
        assert records[0].revenue == Decimal("500")
        assert records[1].attendance == Decimal("0")

    def test_percent_line_delta_skips_missing_rate(self):
        baseline = AssumptionSet(metadata=EventMetadata(
            duration=1,
            initial_attendance=Decimal("10"),
            per_customer={SpendStream.TICKET: Decimal("20")},
        ))
        result = ScenarioDeltaApplier().apply(baseline, deltas(fb_spend_delta=25, merch_spend_delta=10))
        assert result.metadata.per_customer == {SpendStream.TICKET: Decimal("20")}

    def test_absolute_line_delta_creates_missing_rate(self):
        baseline = AssumptionSet(metadata=EventMetadata(
            duration=1,
            per_customer={SpendStream.TICKET: Decimal("20")},
        ))
        result = ScenarioDeltaApplier().apply(baseline, ScenarioParameterDeltas(
            fb_spend_delta=Decimal("3"), fb_spend_delta_type=DeltaType.ABSOLUTE,
        ))
        assert result.metadata.per_customer[SpendStream.FB] == Decimal("3")

    def test_unknown_delta_type_rejected(self):
        with pytest.raises(ConfigurationError):
            apply_line_delta(Decimal("10"), Decimal("1"), "multiply")

    def test_cogs_multiplier_scales_cogs_and_staff_cost(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, deltas(cogs_multiplier=10))
        costs = result.metadata.costs
        assert costs.cogs_percent[SpendStream.FB] == Decimal("33.0")
        assert costs.cogs_percent[SpendStream.MERCHANDISE] == Decimal("55.0")
        assert costs.staff_cost_per_person == Decimal("55.0")
        assert costs.staff_count == Decimal("4")
        assert costs.management_costs == Decimal("100")

    def test_cogs_multiplier_scales_variable_cost_lines(self):
        baseline = AssumptionSet(costs=[
            CostAssumption(name="Fees", value=Decimal("20"), kind=LineKind.VARIABLE),
            CostAssumption(name="Rent", value=Decimal("500")),
        ])
        result = ScenarioDeltaApplier().apply(baseline, deltas(cogs_multiplier=50))
        values = {c.name: c.value for c in result.costs}
        assert values == {"Fees": Decimal("30.0"), "Rent": Decimal("500")}

    def test_zero_cogs_multiplier_is_no_op(self, event_model):
        result = ScenarioDeltaApplier().apply(event_model, deltas(cogs_multiplier=0))
        assert result.metadata.costs == event_model.metadata.costs


@pytest.mark.golden
class TestPricingScenario:

    def test_ten_percent_pricing_on_flat_baseline(self, flat_baseline):
        scenario = ScenarioDeltaApplier().apply(flat_baseline, deltas(pricing_percent=10))
        first = ForecastGenerator().generate(scenario)[0]
        assert first.revenue == Decimal("1100")
        assert first.cost == Decimal("600")
        assert first.profit == Decimal("500")


@pytest.mark.property
class TestNonDestructiveness:

    @given(
        pricing=st.decimals(min_value=-50, max_value=100, places=2),
        marketing=st.decimals(min_value=-50, max_value=100, places=2),
        attendance=st.decimals(min_value=-5, max_value=10, places=2),
        cogs=st.decimals(min_value=-50, max_value=100, places=2),
        ticket=st.decimals(min_value=-10, max_value=10, places=2),
        ticket_type=st.sampled_from(list(DeltaType)),
    )
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_apply_never_changes_baseline(self, event_model, pricing, marketing, attendance, cogs, ticket, ticket_type):
        snapshot = event_model.to_dict()
        ScenarioDeltaApplier().apply(event_model, ScenarioParameterDeltas(
            pricing_percent=pricing,
            marketing_spend_percent=marketing,
            attendance_growth_percent=attendance,
            cogs_multiplier=cogs,
            ticket_price_delta=ticket,
            ticket_price_delta_type=ticket_type,
        ))
        assert event_model.to_dict() == snapshot
