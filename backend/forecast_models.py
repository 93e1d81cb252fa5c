"""
Forecast Engine Value Objects

Plain data structures consumed and produced by the forecast engine:
assumption sets, event metadata, growth specs, period records, actuals and
scenario deltas. Every structure converts from a loose dict (camelCase or
snake_case keys, numbers or numeric strings) and back to a JSON-safe dict.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any

from forecast_errors import ConfigurationError

ZERO = Decimal("0")


# =============================================================================
# ENUMS
# =============================================================================

class GrowthKind(str, Enum):
    """How a growth rate compounds over periods"""
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    SEASONAL = "seasonal"


class LineKind(str, Enum):
    """Behaviour of a revenue or cost line over time"""
    FIXED = "fixed"
    VARIABLE = "variable"
    RECURRING = "recurring"


class CostCategory(str, Enum):
    """Cost breakdown category"""
    STAFFING = "staffing"
    MARKETING = "marketing"
    OPERATIONS = "operations"
    OTHER = "other"
    COGS = "cogs"  # breakdown only, derived from event COGS percentages


class SpendStream(str, Enum):
    """Per-customer spend categories of an event model"""
    TICKET = "ticket"
    FB = "fb"
    MERCHANDISE = "merchandise"
    ONLINE = "online"
    MISC = "misc"


class TimeUnit(str, Enum):
    WEEK = "week"
    MONTH = "month"


class AllocationMode(str, Enum):
    """How the marketing budget is expressed"""
    NONE = "none"
    CHANNELS = "channels"
    HIGH_LEVEL = "high_level"


class BudgetApplication(str, Enum):
    """How a marketing budget is spread over the horizon"""
    UPFRONT = "upfront"
    SPREAD_EVENLY = "spread_evenly"
    SPREAD_CUSTOM = "spread_custom"


class DeltaType(str, Enum):
    """Interpretation of a per-line scenario delta"""
    PERCENT = "percent"
    ABSOLUTE = "absolute"


class ComparisonMode(str, Enum):
    """Temporal semantics used when comparing actuals to the forecast"""
    PERIOD = "period"
    CUMULATIVE = "cumulative"
    PROJECTED = "projected"


# Revenue line names produced for per-customer streams. Generic revenue streams
# carrying one of these names duplicate the per-customer revenue and are skipped
# for event models.
SPEND_STREAM_LABELS: Dict[SpendStream, str] = {
    SpendStream.TICKET: "Ticket Sales",
    SpendStream.FB: "F&B Sales",
    SpendStream.MERCHANDISE: "Merchandise Sales",
    SpendStream.ONLINE: "Online Sales",
    SpendStream.MISC: "Miscellaneous Sales",
}

PER_CUSTOMER_STREAM_NAMES = set(SPEND_STREAM_LABELS.values()) | {"Miscellaneous Revenue"}

# Key aliases accepted when reading per-stream dicts
_SPEND_STREAM_ALIASES: Dict[str, SpendStream] = {
    "ticket": SpendStream.TICKET,
    "ticket_price": SpendStream.TICKET,
    "fb": SpendStream.FB,
    "fb_spend": SpendStream.FB,
    "merchandise": SpendStream.MERCHANDISE,
    "merchandise_spend": SpendStream.MERCHANDISE,
    "merch": SpendStream.MERCHANDISE,
    "online": SpendStream.ONLINE,
    "online_spend": SpendStream.ONLINE,
    "misc": SpendStream.MISC,
    "misc_spend": SpendStream.MISC,
}


# =============================================================================
# CONVERSION HELPERS
# =============================================================================

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    """Convert camelCase / kebab-case keys to snake_case"""
    return _CAMEL_RE.sub("_", name.replace("-", "_")).lower()


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Convert a number or numeric string to Decimal; None and "" give the default"""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ConfigurationError(f"Not a finite number: {value!r}")
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ConfigurationError(f"Not a finite number: {value!r}")
    return result


def to_optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value)


_TRUE_STRINGS = {"true", "yes", "1", "on"}
_FALSE_STRINGS = {"false", "no", "0", "off", ""}


def to_bool(value: Any, default: bool = False) -> bool:
    """Read a flag given as a bool, a number or a "true"/"false" string"""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, Decimal)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"Not a boolean: {value!r}")


def to_optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"Not an integer: {value!r}")
    if not number.is_finite():
        raise ConfigurationError(f"Not an integer: {value!r}")
    return int(number)


def parse_enum(enum_cls, value: Any, default=None):
    """
    Resolve a value into a member of enum_cls.

    Accepts members, their values, and camelCase spellings ("highLevel",
    "spreadEvenly"). Unknown values raise ConfigurationError so that a new
    variant is never silently ignored.
    """
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for candidate in (text, text.lower(), snake_case(text)):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    raise ConfigurationError(f"Unknown {enum_cls.__name__} value: {value!r}")


def _get(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, trying each key and its snake_case form"""
    for key in keys:
        if key in data:
            return data[key]
        snake = snake_case(key)
        if snake in data:
            return data[snake]
    return default


def _normalized_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {snake_case(k): v for k, v in (data or {}).items()}


def parse_spend_map(data: Optional[Dict[str, Any]]) -> Dict[SpendStream, Decimal]:
    """Read a {spend stream -> number} dict, ignoring unrelated keys"""
    result: Dict[SpendStream, Decimal] = {}
    for key, value in (data or {}).items():
        if isinstance(key, SpendStream):
            stream = key
        else:
            stream = _SPEND_STREAM_ALIASES.get(snake_case(str(key)))
        if stream is None:
            continue
        result[stream] = to_decimal(value)
    return result


def spend_map_to_dict(values: Dict[SpendStream, Decimal]) -> Dict[str, str]:
    return {stream.value: str(amount) for stream, amount in values.items()}


def decimal_map_to_dict(values: Dict[str, Decimal]) -> Dict[str, str]:
    return {key: str(amount) for key, amount in values.items()}


def _str_or_none(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


# =============================================================================
# GROWTH
# =============================================================================

@dataclass
class GrowthSpec:
    """
    Growth model of an assumption set.

    `rate` is a per-period fraction (0.05 = 5%). `seasonal_factors` is only
    read for seasonal growth. `individual_rates` override `rate` for the named
    streams only.
    """
    kind: GrowthKind = GrowthKind.LINEAR
    rate: Decimal = ZERO
    seasonal_factors: List[Decimal] = field(default_factory=list)
    individual_rates: Dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        self.kind = parse_enum(GrowthKind, self.kind, GrowthKind.LINEAR)
        if self.kind == GrowthKind.SEASONAL and not self.seasonal_factors:
            raise ConfigurationError("Seasonal growth requires at least one seasonal factor")

    def rate_for(self, stream_key: Optional[str] = None) -> Decimal:
        if stream_key is not None and stream_key in self.individual_rates:
            return self.individual_rates[stream_key]
        return self.rate

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GrowthSpec":
        return cls(
            kind=parse_enum(GrowthKind, _get(data, "kind", "type"), GrowthKind.LINEAR),
            rate=to_decimal(_get(data, "rate")),
            seasonal_factors=[to_decimal(f) for f in (_get(data, "seasonalFactors") or [])],
            individual_rates={
                str(k): to_decimal(v) for k, v in (_get(data, "individualRates") or {}).items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "rate": str(self.rate),
            "seasonal_factors": [str(f) for f in self.seasonal_factors],
            "individual_rates": decimal_map_to_dict(self.individual_rates),
        }


# =============================================================================
# REVENUE AND COST LINES
# =============================================================================

@dataclass
class RevenueAssumption:
    """One named income line"""
    name: str
    value: Decimal
    kind: LineKind = LineKind.FIXED
    frequency: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevenueAssumption":
        return cls(
            name=str(_get(data, "name", default="")),
            value=to_decimal(_get(data, "value")),
            kind=parse_enum(LineKind, _get(data, "kind", "type"), LineKind.FIXED),
            frequency=_get(data, "frequency"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": str(self.value),
            "kind": self.kind.value,
            "frequency": self.frequency,
        }


@dataclass
class CostAssumption:
    """
    One named cost line.

    For variable costs `value` is a percentage of the revenue of
    `revenue_stream` (total revenue when unset).
    """
    name: str
    value: Decimal
    kind: LineKind = LineKind.FIXED
    category: CostCategory = CostCategory.OPERATIONS
    one_time: bool = False
    spread: bool = False
    revenue_stream: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CostAssumption":
        return cls(
            name=str(_get(data, "name", default="")),
            value=to_decimal(_get(data, "value")),
            kind=parse_enum(LineKind, _get(data, "kind", "type"), LineKind.FIXED),
            category=parse_enum(CostCategory, _get(data, "category"), CostCategory.OPERATIONS),
            one_time=to_bool(_get(data, "oneTime")),
            spread=to_bool(_get(data, "spread")),
            revenue_stream=_get(data, "revenueStream"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": str(self.value),
            "kind": self.kind.value,
            "category": self.category.value,
            "one_time": self.one_time,
            "spread": self.spread,
            "revenue_stream": self.revenue_stream,
        }


# =============================================================================
# MARKETING
# =============================================================================

@dataclass
class MarketingChannel:
    """A marketing channel with its own budget and distribution"""
    id: str
    name: str = ""
    channel_type: Optional[str] = None
    budget: Decimal = ZERO
    distribution: BudgetApplication = BudgetApplication.SPREAD_EVENLY
    spread_duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketingChannel":
        return cls(
            id=str(_get(data, "id", default="")),
            name=str(_get(data, "name", default="")),
            channel_type=_get(data, "channelType"),
            budget=to_decimal(_get(data, "budget", "weeklyBudget")),
            distribution=parse_enum(
                BudgetApplication, _get(data, "distribution"), BudgetApplication.SPREAD_EVENLY
            ),
            spread_duration=to_optional_int(_get(data, "spreadDuration")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "channel_type": self.channel_type,
            "budget": str(self.budget),
            "distribution": self.distribution.value,
            "spread_duration": self.spread_duration,
        }


@dataclass
class MarketingSetup:
    """Marketing budget, either per channel or as one high-level budget"""
    allocation_mode: AllocationMode = AllocationMode.NONE
    channels: List[MarketingChannel] = field(default_factory=list)
    total_budget: Decimal = ZERO
    budget_application: BudgetApplication = BudgetApplication.SPREAD_EVENLY
    spread_duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketingSetup":
        return cls(
            allocation_mode=parse_enum(
                AllocationMode, _get(data, "allocationMode"), AllocationMode.NONE
            ),
            channels=[MarketingChannel.from_dict(c) for c in (_get(data, "channels") or [])],
            total_budget=to_decimal(_get(data, "totalBudget")),
            budget_application=parse_enum(
                BudgetApplication, _get(data, "budgetApplication"), BudgetApplication.SPREAD_EVENLY
            ),
            spread_duration=to_optional_int(_get(data, "spreadDuration")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allocation_mode": self.allocation_mode.value,
            "channels": [c.to_dict() for c in self.channels],
            "total_budget": str(self.total_budget),
            "budget_application": self.budget_application.value,
            "spread_duration": self.spread_duration,
        }


# =============================================================================
# EVENT METADATA
# =============================================================================

@dataclass
class EventCosts:
    """Cost detail of an attendance-driven model"""
    setup_cost: Decimal = ZERO
    spread_setup_cost: bool = False
    cogs_percent: Dict[SpendStream, Decimal] = field(default_factory=dict)
    staff_count: Decimal = ZERO
    staff_cost_per_person: Decimal = ZERO
    management_costs: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventCosts":
        flat = _normalized_keys(data)
        cogs = parse_spend_map(flat.get("cogs_percent"))
        # Flat per-stream keys ("fbCOGSPercent", "merchandiseCogsPercent")
        for key, value in flat.items():
            if key.endswith("_c_o_g_s_percent") or key.endswith("_cogs_percent"):
                prefix = key.replace("_c_o_g_s_percent", "").replace("_cogs_percent", "")
                stream = _SPEND_STREAM_ALIASES.get(prefix)
                if stream is not None and stream not in cogs:
                    cogs[stream] = to_decimal(value)
        return cls(
            setup_cost=to_decimal(_get(flat, "setup_cost", "setup_costs")),
            spread_setup_cost=to_bool(_get(flat, "spread_setup_cost", "spread_setup_costs")),
            cogs_percent=cogs,
            staff_count=to_decimal(_get(flat, "staff_count")),
            staff_cost_per_person=to_decimal(_get(flat, "staff_cost_per_person")),
            management_costs=to_decimal(_get(flat, "management_costs")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "setup_cost": str(self.setup_cost),
            "spread_setup_cost": self.spread_setup_cost,
            "cogs_percent": spend_map_to_dict(self.cogs_percent),
            "staff_count": str(self.staff_count),
            "staff_cost_per_person": str(self.staff_cost_per_person),
            "management_costs": str(self.management_costs),
        }


@dataclass
class EventGrowth:
    """
    Growth detail of an attendance-driven model.

    Rates here are percentages (5 = 5% per period), matching how they are
    entered in the planning forms.
    """
    attendance_growth_rate: Decimal = ZERO
    use_customer_spend_growth: bool = False
    spend_growth_rates: Dict[SpendStream, Decimal] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventGrowth":
        flat = _normalized_keys(data)
        rates = parse_spend_map(flat.get("spend_growth_rates"))
        # Flat per-stream keys ("ticketPriceGrowth", "fbSpendGrowth")
        for key, value in flat.items():
            if key.endswith("_growth") and key != "attendance_growth":
                stream = _SPEND_STREAM_ALIASES.get(key[: -len("_growth")])
                if stream is not None and stream not in rates:
                    rates[stream] = to_decimal(value)
        return cls(
            attendance_growth_rate=to_decimal(flat.get("attendance_growth_rate")),
            use_customer_spend_growth=to_bool(flat.get("use_customer_spend_growth")),
            spend_growth_rates=rates,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attendance_growth_rate": str(self.attendance_growth_rate),
            "use_customer_spend_growth": self.use_customer_spend_growth,
            "spend_growth_rates": spend_map_to_dict(self.spend_growth_rates),
        }


@dataclass
class EventMetadata:
    """Specialization for per-customer, attendance-driven products"""
    duration: Optional[int] = None
    time_unit: TimeUnit = TimeUnit.WEEK
    initial_attendance: Decimal = ZERO
    per_customer: Dict[SpendStream, Decimal] = field(default_factory=dict)
    costs: EventCosts = field(default_factory=EventCosts)
    growth: EventGrowth = field(default_factory=EventGrowth)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventMetadata":
        return cls(
            duration=to_optional_int(_get(data, "duration", "weeks")),
            time_unit=parse_enum(TimeUnit, _get(data, "timeUnit"), TimeUnit.WEEK),
            initial_attendance=to_decimal(
                _get(data, "initialAttendance", "initialWeeklyAttendance")
            ),
            per_customer=parse_spend_map(_get(data, "perCustomer")),
            costs=EventCosts.from_dict(_get(data, "costs") or {}),
            growth=EventGrowth.from_dict(_get(data, "growth") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "time_unit": self.time_unit.value,
            "initial_attendance": str(self.initial_attendance),
            "per_customer": spend_map_to_dict(self.per_customer),
            "costs": self.costs.to_dict(),
            "growth": self.growth.to_dict(),
        }


# =============================================================================
# ASSUMPTION SET
# =============================================================================

@dataclass
class AssumptionSet:
    """
    Declarative inputs of a financial model.

    The engine never mutates an AssumptionSet; every transform returns a new
    one.
    """
    revenue_streams: List[RevenueAssumption] = field(default_factory=list)
    costs: List[CostAssumption] = field(default_factory=list)
    growth_model: Optional[GrowthSpec] = None
    metadata: Optional[EventMetadata] = None
    marketing: Optional[MarketingSetup] = None
    duration: Optional[int] = None
    time_unit: TimeUnit = TimeUnit.MONTH
    start_date: Optional[date] = None

    @property
    def is_event_model(self) -> bool:
        return self.metadata is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssumptionSet":
        growth = _get(data, "growthModel")
        metadata = _get(data, "metadata")
        marketing = _get(data, "marketing")
        costs = _get(data, "costs") or []
        if not isinstance(costs, list):
            raise ConfigurationError(
                "costs must be a list of cost lines; event cost detail belongs under metadata.costs"
            )
        start = _get(data, "startDate")
        if isinstance(start, str):
            try:
                start = date.fromisoformat(start)
            except ValueError:
                raise ConfigurationError(f"Invalid start date: {start!r}")
        return cls(
            revenue_streams=[RevenueAssumption.from_dict(r) for r in (_get(data, "revenueStreams") or [])],
            costs=[CostAssumption.from_dict(c) for c in costs],
            growth_model=GrowthSpec.from_dict(growth) if growth else None,
            metadata=EventMetadata.from_dict(metadata) if metadata else None,
            marketing=MarketingSetup.from_dict(marketing) if marketing else None,
            duration=to_optional_int(_get(data, "duration")),
            time_unit=parse_enum(TimeUnit, _get(data, "timeUnit"), TimeUnit.MONTH),
            start_date=start,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revenue_streams": [r.to_dict() for r in self.revenue_streams],
            "costs": [c.to_dict() for c in self.costs],
            "growth_model": self.growth_model.to_dict() if self.growth_model else None,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "marketing": self.marketing.to_dict() if self.marketing else None,
            "duration": self.duration,
            "time_unit": self.time_unit.value,
            "start_date": self.start_date.isoformat() if self.start_date else None,
        }


# =============================================================================
# OUTPUTS AND ACTUALS
# =============================================================================

@dataclass
class PeriodRecord:
    """One forecast period. `period` is 0-indexed, `label` is 1-based."""
    period: int
    label: str
    revenue: Decimal
    cost: Decimal
    profit: Decimal
    cumulative_revenue: Decimal
    cumulative_cost: Decimal
    cumulative_profit: Decimal
    revenue_breakdown: Dict[str, Decimal] = field(default_factory=dict)
    cost_breakdown: Dict[str, Decimal] = field(default_factory=dict)
    cost_line_items: Dict[str, Decimal] = field(default_factory=dict)
    attendance: Optional[Decimal] = None
    period_start: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "label": self.label,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "revenue": str(self.revenue),
            "cost": str(self.cost),
            "profit": str(self.profit),
            "cumulative_revenue": str(self.cumulative_revenue),
            "cumulative_cost": str(self.cumulative_cost),
            "cumulative_profit": str(self.cumulative_profit),
            "revenue_breakdown": decimal_map_to_dict(self.revenue_breakdown),
            "cost_breakdown": decimal_map_to_dict(self.cost_breakdown),
            "cost_line_items": decimal_map_to_dict(self.cost_line_items),
            "attendance": _str_or_none(self.attendance),
        }


@dataclass
class ActualsEntry:
    """
    Recorded results of one period. Periods without an entry are not yet
    actualized; a recorded zero is a real result.
    """
    period: int
    revenue: Decimal
    cost: Decimal
    profit: Optional[Decimal] = None
    attendance: Optional[Decimal] = None
    project_id: Optional[str] = None
    revenue_breakdown: Dict[str, Decimal] = field(default_factory=dict)
    cost_breakdown: Dict[str, Decimal] = field(default_factory=dict)
    notes: Optional[str] = None

    def __post_init__(self):
        if self.profit is None:
            self.profit = self.revenue - self.cost

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActualsEntry":
        revenue_breakdown = {
            str(k): to_decimal(v) for k, v in (_get(data, "revenueBreakdown") or {}).items()
        }
        cost_breakdown = {
            str(k): to_decimal(v) for k, v in (_get(data, "costBreakdown") or {}).items()
        }
        revenue = _get(data, "revenue")
        cost = _get(data, "cost")
        period = to_optional_int(_get(data, "period"))
        if period is None:
            raise ConfigurationError("Actuals entry requires a period")
        return cls(
            period=period,
            revenue=to_decimal(revenue) if revenue is not None else sum(revenue_breakdown.values(), ZERO),
            cost=to_decimal(cost) if cost is not None else sum(cost_breakdown.values(), ZERO),
            profit=to_optional_decimal(_get(data, "profit")),
            attendance=to_optional_decimal(_get(data, "attendance")),
            project_id=_get(data, "projectId"),
            revenue_breakdown=revenue_breakdown,
            cost_breakdown=cost_breakdown,
            notes=_get(data, "notes"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "period": self.period,
            "revenue": str(self.revenue),
            "cost": str(self.cost),
            "profit": str(self.profit),
            "attendance": _str_or_none(self.attendance),
            "revenue_breakdown": decimal_map_to_dict(self.revenue_breakdown),
            "cost_breakdown": decimal_map_to_dict(self.cost_breakdown),
            "notes": self.notes,
        }


# =============================================================================
# SCENARIO DELTAS
# =============================================================================

@dataclass
class ScenarioParameterDeltas:
    """
    What-if adjustments to a baseline. All fields default to zero; an
    all-zero delta set reproduces the baseline exactly.

    Percent fields are percentages (10 = +10%). `attendance_growth_percent`
    is in percentage points added to the baseline growth rate.
    `cogs_multiplier` is a percentage change applied to COGS percentages and
    per-person staff cost, ignored when zero.
    """
    marketing_spend_percent: Decimal = ZERO
    marketing_spend_by_channel: Dict[str, Decimal] = field(default_factory=dict)
    pricing_percent: Decimal = ZERO
    attendance_growth_percent: Decimal = ZERO
    cogs_multiplier: Decimal = ZERO
    ticket_price_delta: Decimal = ZERO
    ticket_price_delta_type: DeltaType = DeltaType.PERCENT
    fb_spend_delta: Decimal = ZERO
    fb_spend_delta_type: DeltaType = DeltaType.PERCENT
    merch_spend_delta: Decimal = ZERO
    merch_spend_delta_type: DeltaType = DeltaType.PERCENT

    @property
    def has_marketing_delta(self) -> bool:
        return self.marketing_spend_percent != 0 or any(
            v != 0 for v in self.marketing_spend_by_channel.values()
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ScenarioParameterDeltas":
        data = data or {}
        return cls(
            marketing_spend_percent=to_decimal(_get(data, "marketingSpendPercent")),
            marketing_spend_by_channel={
                str(k): to_decimal(v)
                for k, v in (_get(data, "marketingSpendByChannel") or {}).items()
            },
            pricing_percent=to_decimal(_get(data, "pricingPercent")),
            attendance_growth_percent=to_decimal(_get(data, "attendanceGrowthPercent")),
            cogs_multiplier=to_decimal(_get(data, "cogsMultiplier")),
            ticket_price_delta=to_decimal(_get(data, "ticketPriceDelta")),
            ticket_price_delta_type=parse_enum(
                DeltaType, _get(data, "ticketPriceDeltaType"), DeltaType.PERCENT
            ),
            fb_spend_delta=to_decimal(_get(data, "fbSpendDelta")),
            fb_spend_delta_type=parse_enum(DeltaType, _get(data, "fbSpendDeltaType"), DeltaType.PERCENT),
            merch_spend_delta=to_decimal(_get(data, "merchSpendDelta")),
            merch_spend_delta_type=parse_enum(
                DeltaType, _get(data, "merchSpendDeltaType"), DeltaType.PERCENT
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "marketing_spend_percent": str(self.marketing_spend_percent),
            "marketing_spend_by_channel": decimal_map_to_dict(self.marketing_spend_by_channel),
            "pricing_percent": str(self.pricing_percent),
            "attendance_growth_percent": str(self.attendance_growth_percent),
            "cogs_multiplier": str(self.cogs_multiplier),
            "ticket_price_delta": str(self.ticket_price_delta),
            "ticket_price_delta_type": self.ticket_price_delta_type.value,
            "fb_spend_delta": str(self.fb_spend_delta),
            "fb_spend_delta_type": self.fb_spend_delta_type.value,
            "merch_spend_delta": str(self.merch_spend_delta),
            "merch_spend_delta_type": self.merch_spend_delta_type.value,
        }
