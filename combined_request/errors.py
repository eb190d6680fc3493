"""Error types raised by form requests and their FastAPI envelope handlers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class FormRequestError(Exception):
    """Domain error mapped to the JSON error envelope."""

    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.request_id = request_id


class MissingParameterError(FormRequestError):
    """Raised when required parameters are absent when they are attached."""

    def __init__(self, *, request_class: str, missing: Sequence[str]) -> None:
        names = sorted(missing)
        super().__init__(
            status_code=500,
            code="MISSING_PARAMETERS",
            message=f"{request_class} is missing required parameters: {', '.join(names)}.",
            details={"requestClass": request_class, "missing": names},
        )
        self.request_class = request_class
        self.missing = names


class AuthorizationError(HTTPException):
    """Access-control failure raised by a denied authorization check."""

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int = 403,
    ) -> None:
        super().__init__(status_code=status_code, detail=message or "This action is unauthorized.")
        self.message = message
        self.code = code


def error_location(field: str) -> tuple[str | int, ...]:
    """Split a dotted field name into a pydantic-style location."""
    return tuple(int(part) if part.isdigit() else part for part in field.split("."))


class FormValidationError(RequestValidationError):
    """Validation failure scoped to a named error bag.

    Subclasses FastAPI's ``RequestValidationError`` so handlers registered for
    the host exception keep working.
    """

    def __init__(self, messages: Mapping[str, Sequence[str]], *, error_bag: str = "default") -> None:
        self.messages: dict[str, list[str]] = {field: list(values) for field, values in messages.items()}
        self.error_bag = error_bag
        super().__init__(
            [
                {"type": "form_validation", "loc": error_location(field), "msg": message}
                for field, values in self.messages.items()
                for message in values
            ]
        )

    @classmethod
    def with_messages(cls, messages: Mapping[str, Sequence[str]], *, error_bag: str = "default") -> FormValidationError:
        return cls(messages, error_bag=error_bag)

    def first(self, field: str) -> str | None:
        values = self.messages.get(field) or []
        return values[0] if values else None


def error_envelope(
    *,
    code: str,
    message: str,
    request_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the canonical error payload."""
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        },
        "requestId": request_id,
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id") or "req-unknown"


async def form_request_error_handler(request: Request, exc: FormRequestError) -> JSONResponse:
    """Convert domain exceptions into canonical JSON error payloads."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(
            code=exc.code,
            message=exc.message,
            request_id=exc.request_id or _request_id(request),
            details=exc.details,
        ),
    )


async def form_validation_error_handler(request: Request, exc: FormValidationError) -> JSONResponse:
    """Render error-bag scoped validation failures with the same envelope."""
    return JSONResponse(
        status_code=422,
        content=error_envelope(
            code="VALIDATION_FAILED",
            message="The given data was invalid.",
            request_id=_request_id(request),
            details={"errorBag": exc.error_bag, "errors": exc.messages},
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on a FastAPI application."""
    app.add_exception_handler(FormRequestError, form_request_error_handler)
    app.add_exception_handler(FormValidationError, form_validation_error_handler)


__all__ = [
    "AuthorizationError",
    "FormRequestError",
    "FormValidationError",
    "MissingParameterError",
    "error_envelope",
    "error_location",
    "form_request_error_handler",
    "form_validation_error_handler",
    "register_error_handlers",
]
