"""Named parameters attached to a single validation attempt."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from combined_request.errors import MissingParameterError

AmbientParameters = Callable[[], Mapping[str, Any]]


def _no_ambient_parameters() -> Mapping[str, Any]:
    return {}


class ParameterStore:
    """Explicit parameters layered over ambient (route-bound) values.

    Explicit values always shadow ambient ones. Required names are checked
    every time values are attached, so a missing parameter surfaces at the
    call site rather than during validation.
    """

    def __init__(self, *, owner: str, ambient: AmbientParameters | None = None) -> None:
        self._owner = owner
        self._ambient = ambient or _no_ambient_parameters
        self._values: dict[str, Any] = {}
        self._required: frozenset[str] = frozenset()

    @property
    def required(self) -> frozenset[str]:
        return self._required

    def set_required(self, names: Iterable[str]) -> ParameterStore:
        self._required = frozenset(names)
        return self

    def attach(self, values: Mapping[str, Any] | None = None) -> ParameterStore:
        if values:
            self._values.update(values)

        missing = [name for name in self._required if self.get(name) is None]
        if missing:
            raise MissingParameterError(request_class=self._owner, missing=missing)
        return self

    def get(self, name: str, default: Any = None) -> Any:
        if name in self._values:
            return self._values[name]
        return self._ambient().get(name, default)

    def has(self, name: str) -> bool:
        return name in self._values or name in self._ambient()

    def all(self) -> dict[str, Any]:
        return {**self._ambient(), **self._values}


__all__ = ["AmbientParameters", "ParameterStore"]
