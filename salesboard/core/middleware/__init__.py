from salesboard.core.middleware.metrics import MetricsMiddleware
from salesboard.core.middleware.rate_limit import WriteRateLimitMiddleware
from salesboard.core.middleware.request_logging import RequestLoggingMiddleware

__all__ = [
    "MetricsMiddleware",
    "RequestLoggingMiddleware",
    "WriteRateLimitMiddleware",
]
