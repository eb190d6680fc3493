"""Allow/deny results returned by ``authorize()`` hooks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from combined_request.errors import AuthorizationError


@dataclass(frozen=True)
class AuthorizationResponse:
    """Outcome of an authorization check with an optional message."""

    allowed: bool
    message: str | None = None
    code: str | None = None
    status: int | None = None

    @classmethod
    def allow(cls, message: str | None = None, code: str | None = None) -> AuthorizationResponse:
        return cls(allowed=True, message=message, code=code)

    @classmethod
    def deny(
        cls,
        message: str | None = None,
        code: str | None = None,
        *,
        status: int | None = None,
    ) -> AuthorizationResponse:
        return cls(allowed=False, message=message, code=code, status=status)

    @classmethod
    def deny_with_status(cls, status: int, message: str | None = None, code: str | None = None) -> AuthorizationResponse:
        return cls.deny(message, code, status=status)

    @classmethod
    def deny_as_not_found(cls, message: str | None = None, code: str | None = None) -> AuthorizationResponse:
        return cls.deny(message, code, status=404)

    @property
    def denied(self) -> bool:
        return not self.allowed

    def authorize(self) -> AuthorizationResponse:
        """Return ``self`` when allowed, raise ``AuthorizationError`` otherwise."""
        if self.denied:
            raise AuthorizationError(self.message, code=self.code, status_code=self.status or 403)
        return self


def resolve_authorization(result: Any) -> AuthorizationResponse:
    """Coerce an ``authorize()`` return value into an ``AuthorizationResponse``.

    Booleans and ``AuthorizationResponse`` instances are the only accepted shapes.
    """
    if isinstance(result, AuthorizationResponse):
        return result
    if isinstance(result, bool):
        return AuthorizationResponse.allow() if result else AuthorizationResponse.deny()
    raise TypeError(
        f"authorize() must return a bool or an AuthorizationResponse, got {type(result).__name__}.",
    )


__all__ = ["AuthorizationResponse", "resolve_authorization"]
