"""Error taxonomy for wealth_analytics_engine.

Only invalid input and cancellation are raised. Data-quality conditions and
numeric non-convergence are recovered locally and encoded in results.
"""


class AnalyticsError(Exception):
    """Base class for errors raised to callers of the analytics engines."""


class InvalidInputError(AnalyticsError, ValueError):
    """Input violates a precondition (negative term, unknown type, bad range)."""


class UnknownAccountError(AnalyticsError, LookupError):
    def __init__(self, account_id):
        super().__init__(f"Unknown account id: {account_id!r}")
        self.account_id = account_id


class UnknownHoldingError(AnalyticsError, LookupError):
    def __init__(self, holding_id):
        super().__init__(f"Unknown holding id: {holding_id!r}")
        self.holding_id = holding_id


class CalculationCancelled(AnalyticsError):
    """Raised when a cancellation token fires or its deadline passes."""
