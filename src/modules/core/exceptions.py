"""Domain error taxonomy and the DRF exception handler.

Services and the stock ledger raise the domain errors below; views let
them propagate and ``api_exception_handler`` renders every failure in a
single shape::

    {"type": "client_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}

Persistence failures (``OperationalError`` / ``InterfaceError``) surface as
``DependencyUnavailable`` (503) instead of a bare 500.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import InterfaceError, OperationalError
from django.http import Http404
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.settings import api_settings
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for errors raised by the storefront core."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "", *, attr: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.attr = attr

    def as_errors(self) -> List[Dict[str, Any]]:
        return [{"code": self.code, "detail": self.message, "attr": self.attr}]


class ValidationFailed(DomainError):
    """Malformed or missing input. Never retried automatically."""

    code = "validation_failed"


class NotFound(DomainError):
    """Unknown product, order or appointment id/ref."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(DomainError):
    """Duplicate unique key or a transition the current state forbids."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class AdminRequired(DomainError):
    """A privileged operation was invoked without an admin principal."""

    code = "admin_required"
    status_code = status.HTTP_403_FORBIDDEN


class DependencyUnavailable(DomainError):
    """The persistence layer (or another backing service) is unreachable."""

    code = "dependency_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# ---------------------------------------------------------------------------
# DRF integration
# ---------------------------------------------------------------------------


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """Translate domain and framework errors into the standard error body."""
    if isinstance(exc, PydanticValidationError):
        exc = _from_pydantic(exc)
    elif isinstance(exc, (OperationalError, InterfaceError)):
        logger.error("persistence.unavailable", error=str(exc))
        exc = DependencyUnavailable("The data store is temporarily unavailable.")
    elif isinstance(exc, Http404):
        exc = drf_exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = drf_exceptions.PermissionDenied()

    if isinstance(exc, DomainError):
        return Response(
            {"type": _error_type(exc.status_code, exc), "errors": exc.as_errors()},
            status=exc.status_code,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    errors = _flatten(exc.get_full_details()) if isinstance(
        exc, drf_exceptions.APIException
    ) else [{"code": "error", "detail": str(exc), "attr": None}]
    response.data = {"type": _error_type(response.status_code, exc), "errors": errors}
    return response


def _error_type(status_code: int, exc: Exception) -> str:
    if isinstance(exc, (ValidationFailed, drf_exceptions.ValidationError)):
        return "validation_error"
    if status_code >= 500:
        return "server_error"
    return "client_error"


def _from_pydantic(exc: PydanticValidationError) -> ValidationFailed:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ())) or None
    return ValidationFailed(first.get("msg", str(exc)), attr=location)


def _flatten(details: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(details, list):
        return [error for item in details for error in _flatten(item, attr)]
    if isinstance(details, dict):
        if set(details) == {"message", "code"}:
            return [
                {
                    "code": str(details["code"]),
                    "detail": str(details["message"]),
                    "attr": attr,
                }
            ]
        errors: List[Dict[str, Any]] = []
        for key, value in details.items():
            if attr is None and key in ("detail", api_settings.NON_FIELD_ERRORS_KEY):
                child = None
            else:
                child = key if attr is None else f"{attr}.{key}"
            errors.extend(_flatten(value, child))
        return errors
    return [{"code": "error", "detail": str(details), "attr": attr}]
