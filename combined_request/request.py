"""Form requests shared by FastAPI routes and server-side components."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from fastapi import Depends, Request
from fastapi.exceptions import RequestValidationError

from combined_request import notifier
from combined_request.authorization import AuthorizationResponse, resolve_authorization
from combined_request.component import Component
from combined_request.config import get_settings
from combined_request.errors import AuthorizationError
from combined_request.notifier import AuthorizationNotifier
from combined_request.observability import log_attempt_event
from combined_request.parameters import ParameterStore
from combined_request.payload import merge_files
from combined_request.sources import AmbientRequestSource, ComponentSnapshotSource, PayloadSource
from combined_request.validator import RuleSet, Validator

logger = logging.getLogger(__name__)

FormRequestT = TypeVar("FormRequestT", bound="CombinedFormRequest")

_FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _collect_items(items: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    collected: dict[str, Any] = {}
    for key, value in items:
        if key not in collected:
            collected[key] = value
        elif isinstance(collected[key], list):
            collected[key].append(value)
        else:
            collected[key] = [collected[key], value]
    return collected


async def read_request_payload(request: Request) -> dict[str, Any]:
    """Query parameters merged with the JSON or form body of ``request``."""
    payload = _collect_items(request.query_params.multi_items())
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        body = await request.body()
        if body:
            try:
                decoded = json.loads(body)
            except json.JSONDecodeError as exc:
                raise RequestValidationError(
                    [
                        {
                            "type": "json_invalid",
                            "loc": ("body", exc.pos),
                            "msg": "JSON decode error",
                            "input": {},
                            "ctx": {"error": exc.msg},
                        }
                    ],
                    body=exc.doc,
                ) from exc
            if not isinstance(decoded, Mapping):
                raise RequestValidationError(
                    [
                        {
                            "type": "model_attributes_type",
                            "loc": ("body",),
                            "msg": "Input should be a valid dictionary or object to extract fields from",
                            "input": decoded,
                        }
                    ],
                    body=decoded,
                )
            payload.update(decoded)
    elif content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        payload.update(_collect_items(form.multi_items()))

    return payload


def _data_get(data: Any, key: str, default: Any = None) -> Any:
    current = data
    for segment in key.split("."):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return default
    return current


class CombinedFormRequest:
    """Validation and authorization rules reusable by routes and components.

    Subclasses override the hooks they need: ``rules``, ``authorize``,
    ``before_validation``, ``with_validator``, ``after_validation``,
    ``messages`` and ``attribute_names``.

    In a FastAPI route the request is resolved as a dependency through
    ``from_request``; denials and rule failures then surface as FastAPI's own
    403 and 422 errors. From a component, ``validate_from_component`` reads the
    component's public state, turns denials into an ``authorization`` field
    error and writes the validated values back onto the component.
    """

    error_bag: str | None = None
    required_parameters: frozenset[str] = frozenset()

    def __init__(
        self,
        *,
        request: Request | None = None,
        component: Component | None = None,
        parameters: Mapping[str, Any] | None = None,
    ) -> None:
        self.request = request
        self.component: Component | None = None
        self.files: dict[str, Any] = {}
        self.using_component_payload = False
        self._input: dict[str, Any] = {}
        self._source: PayloadSource | None = None
        self._validator: Validator | None = None
        self._validated: dict[str, Any] | None = None
        self._parameters = ParameterStore(owner=type(self).__name__, ambient=self._route_parameters)
        self._parameters.set_required(self.required_parameters)

        if component is not None:
            self.using_component(component)
        if parameters is not None:
            self.with_parameters(parameters)

    # Entry points

    @classmethod
    async def from_request(cls: type[FormRequestT], request: Request) -> FormRequestT:
        """FastAPI dependency that validates the incoming HTTP request."""
        payload = await read_request_payload(request)
        instance = cls(request=request)
        instance._source = AmbientRequestSource(payload)
        instance.with_parameters({})
        instance.validate_resolved()
        return instance

    @classmethod
    def as_dependency(cls) -> Any:
        return Depends(cls.from_request)

    @classmethod
    def from_component(
        cls: type[FormRequestT],
        component: Component,
        parameters: Mapping[str, Any] | None = None,
        *,
        request: Request | None = None,
    ) -> FormRequestT:
        """Build an attempt bound to ``component`` without validating it yet."""
        return cls(request=request, component=component, parameters=parameters or {})

    @classmethod
    def validate_from_component(
        cls,
        component: Component,
        parameters: Mapping[str, Any] | None = None,
        *,
        request: Request | None = None,
    ) -> dict[str, Any]:
        return cls.from_component(component, parameters, request=request).validate_with_component()

    @staticmethod
    def notify_authorization_using(callback: AuthorizationNotifier | None) -> None:
        """Register the process-wide notifier for component authorization denials."""
        notifier.notify_authorization_using(callback)

    def using_component(self: FormRequestT, component: Component) -> FormRequestT:
        self.component = component
        self._source = ComponentSnapshotSource(component)
        self._validator = None
        self._validated = None
        return self

    def validate_with_component(self, component: Component | None = None) -> dict[str, Any]:
        if component is not None:
            self.using_component(component)
        if self.component is None:
            raise ValueError("A component instance is required to run validation.")
        return self.validated()

    def validated(self) -> dict[str, Any]:
        """Validated data, running the pipeline on first access only."""
        return dict(self.validate_resolved())

    def validate_resolved(self) -> dict[str, Any]:
        if self._validated is not None:
            return self._validated

        source = self._payload_source()
        self._validator = None
        self.using_component_payload = source.mode == "component"
        try:
            self._parameters.attach()
            log_attempt_event(
                logger,
                level=logging.DEBUG,
                message="Form request validation started.",
                request_class=type(self).__name__,
                mode=source.mode,
                operation="validation_started",
                component=self.component if source.mode == "component" else None,
            )

            source.load(self)
            self.before_validation()
            source.capture(self)

            self._run_authorization(source)

            validator = self.get_validator_instance()
            if validator.fails():
                source.validation_failed(self, validator)

            self.after_validation()

            validated = validator.validated()
            source.validation_passed(self, validated)
            self._validated = validated
            log_attempt_event(
                logger,
                level=logging.DEBUG,
                message="Form request validation passed.",
                request_class=type(self).__name__,
                mode=source.mode,
                operation="validation_passed",
                fields=sorted(str(key) for key in validated),
            )
            return validated
        finally:
            self.using_component_payload = False

    def _payload_source(self) -> PayloadSource:
        if self._source is None:
            self._source = AmbientRequestSource()
        return self._source

    def _run_authorization(self, source: PayloadSource) -> None:
        try:
            resolve_authorization(self.authorize()).authorize()
        except AuthorizationError as exc:
            source.authorization_denied(self, exc)

    def get_validator_instance(self) -> Validator:
        if self._validator is None:
            validator = Validator(
                rules=self.rules(),
                data=self.validation_data(),
                messages=self.messages(),
                attributes=self.attribute_names(),
                name=f"{type(self).__name__}Rules",
            )
            self.with_validator(validator)
            self._validator = validator
        return self._validator

    # Hooks

    def rules(self) -> RuleSet:
        return {}

    def authorize(self) -> bool | AuthorizationResponse:
        return True

    def before_validation(self) -> None:
        """Adjust the input before it is authorized and validated."""

    def with_validator(self, validator: Validator) -> None:
        """Register extra ``validator.after`` checks."""

    def after_validation(self) -> None:
        """Run side effects once the rules passed."""

    def messages(self) -> dict[str, str]:
        return {}

    def attribute_names(self) -> dict[str, str]:
        return {}

    def authorization_message(self) -> str:
        return get_settings().authorization_message

    def get_error_bag(self) -> str:
        return self.error_bag or get_settings().error_bag

    # Input

    def all(self) -> dict[str, Any]:
        return merge_files(self._input, self.files)

    def input(self, key: str | None = None, default: Any = None) -> Any:
        data = self.all()
        if key is None:
            return data
        return _data_get(data, key, default)

    def has(self, key: str) -> bool:
        marker = object()
        return _data_get(self.all(), key, marker) is not marker

    def merge(self: FormRequestT, values: Mapping[str, Any]) -> FormRequestT:
        self._input.update(values)
        return self

    def replace(self: FormRequestT, values: Mapping[str, Any]) -> FormRequestT:
        self._input = dict(values)
        return self

    def validation_data(self) -> dict[str, Any]:
        if self.using_component_payload and self._source is not None:
            return self._source.validation_data(self)
        return self.all()

    # Parameters

    def _route_parameters(self) -> Mapping[str, Any]:
        if self.request is None:
            return {}
        return dict(self.request.path_params)

    def route(self, name: str, default: Any = None) -> Any:
        return self._route_parameters().get(name, default)

    def with_parameters(self: FormRequestT, values: Mapping[str, Any]) -> FormRequestT:
        self._parameters.attach(values)
        return self

    def parameter(self, name: str, default: Any = None) -> Any:
        return self._parameters.get(name, default)

    def has_parameter(self, name: str) -> bool:
        return self._parameters.has(name)

    def parameters(self) -> dict[str, Any]:
        return self._parameters.all()


__all__ = ["CombinedFormRequest", "read_request_payload"]
