"""
Translate service exceptions into HTTP errors inside route handlers.
"""
from contextlib import contextmanager

from fastapi import HTTPException, status

from sannu.exceptions import ValidationError


@contextmanager
def service_errors(status_code: int = status.HTTP_400_BAD_REQUEST):
    """
    Usage:
        with service_errors():
            service.activate_project(project, user)

    ValueError becomes HTTPException(status_code); ValidationError passes
    through to the 422 handler.
    """
    try:
        yield
    except ValidationError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=status_code, detail=str(e))
