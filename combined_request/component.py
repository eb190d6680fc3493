"""Server-side UI component boundary."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from combined_request.errors import FormValidationError


@runtime_checkable
class Component(Protocol):
    """State and error-bag surface a form request needs from a component."""

    def all(self) -> dict[str, Any]:
        ...

    def fill(self, values: Mapping[str, Any]) -> Any:
        ...

    def reset_error_bag(self) -> Any:
        ...

    def add_error(self, field: str, message: str) -> Any:
        ...


class StatefulComponent:
    """Component whose public state is its annotated, non-underscore attributes.

    ``call`` mirrors an action dispatch: a ``FormValidationError`` raised by the
    action replaces the component's error bag instead of propagating.
    """

    def __init__(self, **state: Any) -> None:
        self._errors: dict[str, list[str]] = {}
        self.fill(state)

    def _public_names(self) -> list[str]:
        names: list[str] = []
        for klass in reversed(type(self).__mro__):
            for name in inspect.get_annotations(klass):
                if not name.startswith("_") and name not in names:
                    names.append(name)
        for name in vars(self):
            if not name.startswith("_") and name not in names:
                names.append(name)
        return names

    def all(self) -> dict[str, Any]:
        return {name: getattr(self, name, None) for name in self._public_names()}

    def fill(self, values: Mapping[str, Any]) -> StatefulComponent:
        for name, value in values.items():
            if isinstance(name, str) and not name.startswith("_"):
                setattr(self, name, value)
        return self

    def reset_error_bag(self) -> StatefulComponent:
        self._errors = {}
        return self

    def add_error(self, field: str, message: str) -> StatefulComponent:
        self._errors.setdefault(field, []).append(message)
        return self

    def set_error_bag(self, messages: Mapping[str, list[str]]) -> StatefulComponent:
        self._errors = {field: list(values) for field, values in messages.items()}
        return self

    def get_error_bag(self) -> dict[str, list[str]]:
        return {field: list(values) for field, values in self._errors.items()}

    def has_errors(self, *fields: str) -> bool:
        if not fields:
            return any(self._errors.values())
        return all(self._errors.get(field) for field in fields)

    def call(self, action: str | Callable[[], Any], *args: Any, **kwargs: Any) -> Any:
        method = getattr(self, action) if isinstance(action, str) else action
        try:
            return method(*args, **kwargs)
        except FormValidationError as exc:
            self.set_error_bag(exc.messages)
            return None


__all__ = ["Component", "StatefulComponent"]
