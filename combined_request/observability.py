"""Structured logging helpers for form request attempts."""

from __future__ import annotations

import logging
from typing import Literal

AttemptMode = Literal["ambient", "component"]


def attempt_log_fields(
    *,
    request_class: str,
    mode: AttemptMode,
    operation: str,
    error_bag: str | None = None,
    component: object | None = None,
    **details: object,
) -> dict[str, object]:
    fields: dict[str, object] = {
        "requestClass": request_class,
        "mode": mode,
        "operation": operation,
    }
    if error_bag is not None:
        fields["errorBag"] = error_bag
    if component is not None:
        fields["component"] = type(component).__name__
    for key, value in details.items():
        if value is None:
            continue
        fields[key] = value
    return fields


def log_attempt_event(
    logger: logging.Logger,
    *,
    level: int,
    message: str,
    request_class: str,
    mode: AttemptMode,
    operation: str,
    error_bag: str | None = None,
    component: object | None = None,
    **details: object,
) -> None:
    logger.log(
        level,
        message,
        extra=attempt_log_fields(
            request_class=request_class,
            mode=mode,
            operation=operation,
            error_bag=error_bag,
            component=component,
            **details,
        ),
    )
