"""
Forecast Engine Errors

Distinct error types so callers can tell an unusable model apart from a
call made without the data it needs.
"""


class ForecastEngineError(Exception):
    """Base class for errors raised by the forecast engine"""
    pass


class ConfigurationError(ForecastEngineError):
    """Raised when an assumption set cannot be forecast (bad duration, seasonal growth without factors, unknown kind)"""
    pass


class PreconditionError(ForecastEngineError):
    """Raised when an operation is called without its required inputs"""
    pass
