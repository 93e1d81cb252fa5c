"""
Growth Evaluator

Turns a growth model and a period index into the multiplier applied to a base
quantity at that period.
"""

from decimal import Decimal
from typing import Optional

from forecast_errors import ConfigurationError
from forecast_models import GrowthSpec, GrowthKind

ONE = Decimal("1")


class GrowthEvaluator:
    """
    Deterministic growth multipliers.

    - linear:      1 + rate * p
    - exponential: (1 + rate) ** p
    - seasonal:    seasonal_factors[p % len(seasonal_factors)]

    Period 0 is the unscaled baseline for linear and exponential growth.
    """

    def factor(
        self,
        growth: Optional[GrowthSpec],
        period_index: int,
        stream_key: Optional[str] = None,
    ) -> Decimal:
        # No growth model means no scaling
        if growth is None:
            return ONE
        if period_index < 0:
            raise ConfigurationError(f"Period index must be non-negative, got {period_index}")

        if growth.kind == GrowthKind.SEASONAL:
            if not growth.seasonal_factors:
                raise ConfigurationError("Seasonal growth requires at least one seasonal factor")
            return growth.seasonal_factors[period_index % len(growth.seasonal_factors)]

        rate = growth.rate_for(stream_key)
        if period_index == 0 and growth.kind in (GrowthKind.LINEAR, GrowthKind.EXPONENTIAL):
            return ONE
        if growth.kind == GrowthKind.LINEAR:
            return ONE + rate * period_index
        if growth.kind == GrowthKind.EXPONENTIAL:
            return (ONE + rate) ** period_index

        raise ConfigurationError(f"Unsupported growth kind: {growth.kind!r}")

    def has_override(self, growth: Optional[GrowthSpec], stream_key: str) -> bool:
        """True when the growth model carries an individual rate for stream_key"""
        return growth is not None and stream_key in growth.individual_rates
