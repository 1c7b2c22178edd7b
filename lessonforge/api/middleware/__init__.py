from lessonforge.api.middleware.rate_limit import RateLimitMiddleware
from lessonforge.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware

__all__ = ["RateLimitMiddleware", "RequestIdMiddleware", "REQUEST_ID_HEADER"]
