"""Rule evaluation over pydantic models with per-field messages."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from combined_request.errors import error_location

RuleSet = type[BaseModel] | Mapping[str, Any]
AfterCallback = Callable[["Validator"], None]

_DEFAULT_MESSAGES: dict[str, str] = {
    "missing": "The {attribute} field is required.",
    "string_type": "The {attribute} field must be a string.",
    "int_type": "The {attribute} field must be an integer.",
    "int_parsing": "The {attribute} field must be an integer.",
    "float_type": "The {attribute} field must be a number.",
    "float_parsing": "The {attribute} field must be a number.",
    "bool_type": "The {attribute} field must be true or false.",
    "bool_parsing": "The {attribute} field must be true or false.",
    "list_type": "The {attribute} field must be a list.",
    "dict_type": "The {attribute} field must be an object.",
}


def build_rules_model(name: str, rules: RuleSet) -> type[BaseModel]:
    """Return ``rules`` as a pydantic model class.

    Mapping values are annotations of required fields, or ``(annotation,
    default)`` tuples for optional ones.
    """
    if isinstance(rules, type) and issubclass(rules, BaseModel):
        return rules

    fields: dict[str, Any] = {}
    for field, rule in rules.items():
        if isinstance(rule, tuple) and len(rule) == 2:
            fields[field] = rule
        else:
            fields[field] = (rule, ...)
    return create_model(name, __config__=ConfigDict(arbitrary_types_allowed=True), **fields)


class MessageBag:
    """Field name to list of messages."""

    def __init__(self, messages: Mapping[str, list[str]] | None = None) -> None:
        self._messages: dict[str, list[str]] = {}
        for field, values in (messages or {}).items():
            for message in values:
                self.add(field, message)

    def add(self, field: str, message: str) -> MessageBag:
        bucket = self._messages.setdefault(field, [])
        if message not in bucket:
            bucket.append(message)
        return self

    def has(self, field: str) -> bool:
        return bool(self._messages.get(field))

    def get(self, field: str) -> list[str]:
        return list(self._messages.get(field, []))

    def first(self, field: str) -> str | None:
        values = self._messages.get(field)
        return values[0] if values else None

    def is_empty(self) -> bool:
        return not any(self._messages.values())

    def keys(self) -> list[str]:
        return list(self._messages)

    def to_dict(self) -> dict[str, list[str]]:
        return {field: list(values) for field, values in self._messages.items() if values}

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_dict())

    def __len__(self) -> int:
        return sum(len(values) for values in self._messages.values())


class Validator:
    """Evaluates one rule set against one data snapshot.

    Evaluation runs once; ``after`` callbacks see the validator after the
    model checks and may add more errors.
    """

    def __init__(
        self,
        *,
        rules: RuleSet,
        data: Mapping[str, Any],
        messages: Mapping[str, str] | None = None,
        attributes: Mapping[str, str] | None = None,
        name: str = "Rules",
    ) -> None:
        self._model = build_rules_model(name, rules)
        self._data = dict(data)
        self._custom_messages = dict(messages or {})
        self._attributes = dict(attributes or {})
        self._after: list[AfterCallback] = []
        self._errors: MessageBag | None = None
        self._validated: dict[str, Any] | None = None

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._data)

    def after(self, callback: AfterCallback) -> Validator:
        self._after.append(callback)
        return self

    def errors(self) -> MessageBag:
        if self._errors is None:
            self._errors = self._evaluate()
        return self._errors

    def passes(self) -> bool:
        return self.errors().is_empty()

    def fails(self) -> bool:
        return not self.passes()

    def validated(self) -> dict[str, Any]:
        if self.fails() or self._validated is None:
            raise ValueError("Cannot read validated data from a validator that failed.")
        return dict(self._validated)

    def error_details(self) -> list[dict[str, Any]]:
        """Errors shaped like pydantic's, located in the request body."""
        details: list[dict[str, Any]] = []
        for field, values in self.errors().to_dict().items():
            loc = error_location(field)
            for message in values:
                details.append({"type": "form_validation", "loc": ("body", *loc), "msg": message})
        return details

    def _evaluate(self) -> MessageBag:
        errors = MessageBag()
        self._errors = errors
        instance: BaseModel | None = None
        try:
            instance = self._model.model_validate(self._data)
        except ValidationError as exc:
            for error in exc.errors(include_url=False):
                field = ".".join(str(part) for part in error["loc"]) or "data"
                errors.add(field, self._message_for(field, error))

        for callback in self._after:
            callback(self)

        if instance is not None and errors.is_empty():
            self._validated = instance.model_dump(exclude_unset=True)
        return errors

    def _message_for(self, field: str, error: Mapping[str, Any]) -> str:
        error_type = str(error.get("type", ""))
        attribute = self._attributes.get(field, field.replace("_", " "))
        custom = self._custom_messages.get(f"{field}.{error_type}") or self._custom_messages.get(field)
        if custom is not None:
            return custom.replace("{attribute}", attribute)
        template = _DEFAULT_MESSAGES.get(error_type)
        if template is not None:
            return template.replace("{attribute}", attribute)
        return f"The {attribute} field is invalid: {error.get('msg', 'invalid value')}."


__all__ = ["MessageBag", "RuleSet", "Validator", "build_rules_model"]
