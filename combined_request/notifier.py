"""Process-wide callback notified when component authorization is denied."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

AuthorizationNotifier = Callable[[Any, str], None]

# Set once at application startup; read on every denial.
_authorization_notifier: AuthorizationNotifier | None = None


def notify_authorization_using(callback: AuthorizationNotifier | None) -> None:
    """Register ``callback(component, message)``, or clear it with ``None``."""
    global _authorization_notifier
    _authorization_notifier = callback


def authorization_notifier() -> AuthorizationNotifier | None:
    return _authorization_notifier


def dispatch_authorization_failure(component: Any, message: str) -> None:
    """Call the registered notifier without letting it break the caller."""
    callback = _authorization_notifier
    if callback is None or component is None:
        return
    try:
        callback(component, message)
    except Exception:
        logger.exception(
            "Authorization notifier raised; continuing with the denial.",
            extra={"operation": "notifier_failed", "component": type(component).__name__},
        )


__all__ = [
    "AuthorizationNotifier",
    "authorization_notifier",
    "dispatch_authorization_failure",
    "notify_authorization_using",
]
