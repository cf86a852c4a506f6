"""
Custom exceptions.

Services raise ValueError (or ValidationError for field-level problems);
routes translate them to HTTP responses. The request-level exceptions
below are rendered by the handlers registered in `sannu.main`.
"""
from typing import Dict, List


class ValidationError(ValueError):
    """Field-level validation failure: {"field": ["message", ...]}."""

    def __init__(self, errors: Dict[str, List[str]], message: str = "The given data was invalid."):
        super().__init__(message)
        self.message = message
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls({field: [message]}, message)


class AuthenticationRequired(Exception):
    """No authenticated user for a route that requires one."""

    def __init__(self, reason: str = "Unauthenticated."):
        super().__init__(reason)
        self.reason = reason


class TenantNotFound(Exception):
    """Tenant slug from the subdomain or path did not resolve to an active tenant."""

    def __init__(self, slug: str, via_subdomain: bool = False):
        super().__init__(f"Tenant not found: {slug}")
        self.slug = slug
        self.via_subdomain = via_subdomain


class TooManyAttempts(Exception):
    """Rate limit exceeded for a throttle key."""

    def __init__(self, retry_after: int):
        super().__init__(f"Too many attempts, retry after {retry_after}s")
        self.retry_after = retry_after
