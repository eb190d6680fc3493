"""Mode-specific steps of the form request pipeline."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, NoReturn, Protocol

from fastapi.exceptions import RequestValidationError

from combined_request.config import get_settings
from combined_request.errors import AuthorizationError, FormValidationError
from combined_request.notifier import dispatch_authorization_failure
from combined_request.observability import AttemptMode, log_attempt_event
from combined_request.payload import normalize_for_request, separate_files
from combined_request.validator import Validator

if TYPE_CHECKING:
    from combined_request.component import Component
    from combined_request.request import CombinedFormRequest

logger = logging.getLogger(__name__)


class PayloadSource(Protocol):
    """Where an attempt's payload comes from and how its outcomes surface."""

    mode: AttemptMode

    def load(self, attempt: CombinedFormRequest) -> None:
        ...

    def capture(self, attempt: CombinedFormRequest) -> None:
        ...

    def validation_data(self, attempt: CombinedFormRequest) -> dict[str, Any]:
        ...

    def authorization_denied(self, attempt: CombinedFormRequest, exc: AuthorizationError) -> NoReturn:
        ...

    def validation_failed(self, attempt: CombinedFormRequest, validator: Validator) -> NoReturn:
        ...

    def validation_passed(self, attempt: CombinedFormRequest, validated: Mapping[str, Any]) -> None:
        ...


def _load_payload(attempt: CombinedFormRequest, payload: Mapping[str, Any]) -> None:
    input_values, files = separate_files(payload)
    attempt.replace(normalize_for_request(input_values))
    attempt.files = files


class AmbientRequestSource(PayloadSource):
    """Payload carried by the HTTP request; failures follow FastAPI's own paths."""

    mode: AttemptMode = "ambient"

    def __init__(self, payload: Mapping[str, Any] | None = None) -> None:
        self._payload = payload

    def load(self, attempt: CombinedFormRequest) -> None:
        # Without a preloaded body the attempt keeps whatever input was replaced onto it.
        if self._payload is not None:
            _load_payload(attempt, self._payload)

    def capture(self, attempt: CombinedFormRequest) -> None:
        _ = attempt

    def validation_data(self, attempt: CombinedFormRequest) -> dict[str, Any]:
        return attempt.all()

    def authorization_denied(self, attempt: CombinedFormRequest, exc: AuthorizationError) -> NoReturn:
        log_attempt_event(
            logger,
            level=logging.INFO,
            message="Form request authorization denied.",
            request_class=type(attempt).__name__,
            mode=self.mode,
            operation="authorization_denied",
            statusCode=exc.status_code,
            errorCode=exc.code,
        )
        raise AuthorizationError(
            exc.message or attempt.authorization_message(),
            code=exc.code,
            status_code=exc.status_code,
        ) from exc

    def validation_failed(self, attempt: CombinedFormRequest, validator: Validator) -> NoReturn:
        log_attempt_event(
            logger,
            level=logging.INFO,
            message="Form request validation failed.",
            request_class=type(attempt).__name__,
            mode=self.mode,
            operation="validation_failed",
            fields=validator.errors().keys(),
        )
        raise RequestValidationError(validator.error_details())

    def validation_passed(self, attempt: CombinedFormRequest, validated: Mapping[str, Any]) -> None:
        _ = (attempt, validated)


class ComponentSnapshotSource(PayloadSource):
    """Payload read from a component's public state.

    The post-hook payload is frozen as the validation snapshot, denials become
    field errors and validated values are written back to the component.
    """

    mode: AttemptMode = "component"

    def __init__(self, component: Component) -> None:
        self.component = component
        self._snapshot: dict[str, Any] | None = None

    def load(self, attempt: CombinedFormRequest) -> None:
        self._snapshot = None
        _load_payload(attempt, self.component.all())

    def capture(self, attempt: CombinedFormRequest) -> None:
        self._snapshot = attempt.all()

    def validation_data(self, attempt: CombinedFormRequest) -> dict[str, Any]:
        if self._snapshot is None:
            return attempt.all()
        return dict(self._snapshot)

    def authorization_denied(self, attempt: CombinedFormRequest, exc: AuthorizationError) -> NoReturn:
        message = exc.message or attempt.authorization_message()
        error_bag = attempt.get_error_bag()
        log_attempt_event(
            logger,
            level=logging.INFO,
            message="Form request authorization denied for component.",
            request_class=type(attempt).__name__,
            mode=self.mode,
            operation="authorization_denied",
            error_bag=error_bag,
            component=self.component,
        )
        dispatch_authorization_failure(self.component, message)
        raise FormValidationError.with_messages(
            {get_settings().authorization_error_key: [message]},
            error_bag=error_bag,
        ) from exc

    def validation_failed(self, attempt: CombinedFormRequest, validator: Validator) -> NoReturn:
        error_bag = attempt.get_error_bag()
        log_attempt_event(
            logger,
            level=logging.INFO,
            message="Form request validation failed for component.",
            request_class=type(attempt).__name__,
            mode=self.mode,
            operation="validation_failed",
            error_bag=error_bag,
            component=self.component,
            fields=validator.errors().keys(),
        )
        raise FormValidationError(validator.errors().to_dict(), error_bag=error_bag)

    def validation_passed(self, attempt: CombinedFormRequest, validated: Mapping[str, Any]) -> None:
        _ = attempt
        self.component.reset_error_bag()
        self.component.fill(dict(validated))


__all__ = ["AmbientRequestSource", "ComponentSnapshotSource", "PayloadSource"]
