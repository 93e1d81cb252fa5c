"""
Scenario Delta Applier

Builds a what-if assumption set from a baseline and a set of parameter
deltas. The baseline is never touched: every nested object of the result is
a new instance, built field by field.

Composition rules:
- marketing: global percent first, then the channel-specific percent
- pricing: multiplicative on per-customer rates and generic revenue lines
- per-line ticket / F&B / merchandise deltas: percent scales, absolute adds
- attendance growth: percentage points added to the baseline rate
- COGS: percentage change on COGS percentages and per-person staff cost
"""

from decimal import Decimal
from typing import Optional, List, Dict
import logging

from forecast_errors import ConfigurationError, PreconditionError
from forecast_models import (
    AssumptionSet, RevenueAssumption, CostAssumption, GrowthSpec, EventMetadata,
    EventCosts, EventGrowth, MarketingSetup, MarketingChannel, AllocationMode,
    ScenarioParameterDeltas, DeltaType, SpendStream, LineKind,
    SPEND_STREAM_LABELS, PER_CUSTOMER_STREAM_NAMES,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")
HUNDRED = Decimal("100")

# Per-line deltas and the spend stream each one targets
LINE_DELTA_STREAMS = (
    (SpendStream.TICKET, "ticket_price_delta", "ticket_price_delta_type"),
    (SpendStream.FB, "fb_spend_delta", "fb_spend_delta_type"),
    (SpendStream.MERCHANDISE, "merch_spend_delta", "merch_spend_delta_type"),
)

PRICED_SPEND_STREAMS = (SpendStream.TICKET, SpendStream.FB, SpendStream.MERCHANDISE)


def percent_change(value: Decimal, percent: Decimal) -> Decimal:
    """value * (1 + percent / 100); zero percent returns value unchanged"""
    if percent == 0:
        return value
    return value * (ONE + percent / HUNDRED)


def apply_line_delta(value: Decimal, delta: Decimal, delta_type: DeltaType) -> Decimal:
    if delta == 0:
        return value
    if delta_type == DeltaType.PERCENT:
        return value * (ONE + delta / HUNDRED)
    if delta_type == DeltaType.ABSOLUTE:
        return value + delta
    raise ConfigurationError(f"Unsupported delta type: {delta_type!r}")


class ScenarioDeltaApplier:
    """Pure transform from (baseline, deltas) to a scenario assumption set"""

    def apply(
        self,
        baseline: Optional[AssumptionSet],
        deltas: Optional[ScenarioParameterDeltas] = None,
    ) -> AssumptionSet:
        """
        Apply deltas to a baseline.

        1. Marketing budgets (global, then per channel) and allocation mode
        2. Pricing on per-customer rates and generic revenue lines
        3. Per-line ticket / F&B / merchandise deltas
        4. Attendance growth (additive) and spend-growth enablement
        5. COGS percentages and staff cost

        An all-zero delta set returns a structurally independent copy equal
        to the baseline.
        """
        if baseline is None:
            raise PreconditionError("Scenario deltas require a baseline assumption set")
        if deltas is None:
            deltas = ScenarioParameterDeltas()

        scenario = AssumptionSet(
            revenue_streams=self._revenue_streams(baseline, deltas),
            costs=self._costs(baseline.costs, deltas),
            growth_model=self._growth_model(baseline.growth_model),
            metadata=self._metadata(baseline.metadata, deltas),
            marketing=self._marketing(baseline.marketing, deltas),
            duration=baseline.duration,
            time_unit=baseline.time_unit,
            start_date=baseline.start_date,
        )

        if deltas.attendance_growth_percent != 0 and not baseline.is_event_model:
            logger.warning("Attendance growth delta ignored: assumption set has no event metadata")

        logger.debug(f"Applied scenario deltas {deltas.to_dict()}")
        return scenario

    # =========================================================================
    # REVENUE
    # =========================================================================

    def _revenue_streams(self, baseline: AssumptionSet, deltas: ScenarioParameterDeltas) -> List[RevenueAssumption]:
        line_deltas = {
            SPEND_STREAM_LABELS[stream]: (getattr(deltas, value_attr), getattr(deltas, type_attr))
            for stream, value_attr, type_attr in LINE_DELTA_STREAMS
        }
        streams = []
        for stream in baseline.revenue_streams:
            value = stream.value
            per_customer_driven = baseline.is_event_model and stream.name in PER_CUSTOMER_STREAM_NAMES
            if not per_customer_driven:
                value = percent_change(value, deltas.pricing_percent)
                # Without event metadata the per-line deltas target the named lines
                if not baseline.is_event_model and stream.name in line_deltas:
                    delta, delta_type = line_deltas[stream.name]
                    value = apply_line_delta(value, delta, delta_type)
            streams.append(RevenueAssumption(
                name=stream.name,
                value=value,
                kind=stream.kind,
                frequency=stream.frequency,
            ))
        return streams

    def _per_customer(self, per_customer: Dict[SpendStream, Decimal], deltas: ScenarioParameterDeltas) -> Dict[SpendStream, Decimal]:
        rates = dict(per_customer)
        for stream in PRICED_SPEND_STREAMS:
            if stream in rates:
                rates[stream] = percent_change(rates[stream], deltas.pricing_percent)
        for stream, value_attr, type_attr in LINE_DELTA_STREAMS:
            delta = getattr(deltas, value_attr)
            if delta == 0:
                continue
            if stream not in rates and getattr(deltas, type_attr) == DeltaType.PERCENT:
                continue
            rates[stream] = apply_line_delta(rates.get(stream, Decimal("0")), delta, getattr(deltas, type_attr))
        return rates

    # =========================================================================
    # COSTS
    # =========================================================================

    def _costs(self, costs: List[CostAssumption], deltas: ScenarioParameterDeltas) -> List[CostAssumption]:
        result = []
        for cost in costs:
            value = cost.value
            if cost.kind == LineKind.VARIABLE:
                value = percent_change(value, deltas.cogs_multiplier)
            result.append(CostAssumption(
                name=cost.name,
                value=value,
                kind=cost.kind,
                category=cost.category,
                one_time=cost.one_time,
                spread=cost.spread,
                revenue_stream=cost.revenue_stream,
            ))
        return result

    def _event_costs(self, costs: EventCosts, deltas: ScenarioParameterDeltas) -> EventCosts:
        return EventCosts(
            setup_cost=costs.setup_cost,
            spread_setup_cost=costs.spread_setup_cost,
            cogs_percent={
                stream: percent_change(percent, deltas.cogs_multiplier)
                for stream, percent in costs.cogs_percent.items()
            },
            staff_count=costs.staff_count,
            staff_cost_per_person=percent_change(costs.staff_cost_per_person, deltas.cogs_multiplier),
            management_costs=costs.management_costs,
        )

    # =========================================================================
    # GROWTH AND EVENT METADATA
    # =========================================================================

    def _growth_model(self, growth: Optional[GrowthSpec]) -> Optional[GrowthSpec]:
        if growth is None:
            return None
        return GrowthSpec(
            kind=growth.kind,
            rate=growth.rate,
            seasonal_factors=list(growth.seasonal_factors),
            individual_rates=dict(growth.individual_rates),
        )

    def _event_growth(self, growth: EventGrowth, deltas: ScenarioParameterDeltas) -> EventGrowth:
        if deltas.attendance_growth_percent == 0:
            return EventGrowth(
                attendance_growth_rate=growth.attendance_growth_rate,
                use_customer_spend_growth=growth.use_customer_spend_growth,
                spend_growth_rates=dict(growth.spend_growth_rates),
            )
        new_rate = growth.attendance_growth_rate + deltas.attendance_growth_percent
        logger.info(
            f"Attendance growth rate {growth.attendance_growth_rate}% -> {new_rate}% "
            f"({deltas.attendance_growth_percent:+} points)"
        )
        return EventGrowth(
            attendance_growth_rate=new_rate,
            use_customer_spend_growth=True,
            spend_growth_rates=dict(growth.spend_growth_rates),
        )

    def _metadata(self, metadata: Optional[EventMetadata], deltas: ScenarioParameterDeltas) -> Optional[EventMetadata]:
        if metadata is None:
            return None
        return EventMetadata(
            duration=metadata.duration,
            time_unit=metadata.time_unit,
            initial_attendance=metadata.initial_attendance,
            per_customer=self._per_customer(metadata.per_customer, deltas),
            costs=self._event_costs(metadata.costs, deltas),
            growth=self._event_growth(metadata.growth, deltas),
        )

    # =========================================================================
    # MARKETING
    # =========================================================================

    def _marketing(self, marketing: Optional[MarketingSetup], deltas: ScenarioParameterDeltas) -> Optional[MarketingSetup]:
        if marketing is None:
            if not deltas.has_marketing_delta:
                return None
            logger.warning("Marketing delta on a model without marketing setup; using an empty high-level budget")
            return MarketingSetup(allocation_mode=AllocationMode.HIGH_LEVEL)

        channels = []
        for channel in marketing.channels:
            budget = percent_change(channel.budget, deltas.marketing_spend_percent)
            budget = percent_change(budget, deltas.marketing_spend_by_channel.get(channel.id, Decimal("0")))
            channels.append(MarketingChannel(
                id=channel.id,
                name=channel.name,
                channel_type=channel.channel_type,
                budget=budget,
                distribution=channel.distribution,
                spread_duration=channel.spread_duration,
            ))

        allocation_mode = marketing.allocation_mode
        if deltas.has_marketing_delta and allocation_mode == AllocationMode.NONE:
            allocation_mode = AllocationMode.CHANNELS if channels else AllocationMode.HIGH_LEVEL
            logger.warning(f"Marketing allocation mode was 'none' with a marketing delta; using '{allocation_mode.value}'")

        return MarketingSetup(
            allocation_mode=allocation_mode,
            channels=channels,
            total_budget=percent_change(marketing.total_budget, deltas.marketing_spend_percent),
            budget_application=marketing.budget_application,
            spread_duration=marketing.spread_duration,
        )
