"""Payload normalization between component state and the validation input."""

from __future__ import annotations

import dataclasses
import enum
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError
from starlette.datastructures import UploadFile

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, bytes, int, float, bool)


class ValueKind(enum.Enum):
    """Closed set of value shapes the normalizer distinguishes."""

    SCALAR = "scalar"
    FILE_LIKE = "file_like"
    MAPPING = "mapping"
    ARRAY_LIKE = "array_like"
    ENUM = "enum"
    SERIALIZABLE = "serializable"
    STRINGABLE = "stringable"
    OPAQUE = "opaque"


def classify(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.SCALAR
    # Enum members first: IntEnum and StrEnum are also ints and strs.
    if isinstance(value, enum.Enum):
        return ValueKind.ENUM
    if isinstance(value, UploadFile):
        return ValueKind.FILE_LIKE
    if isinstance(value, _SCALAR_TYPES):
        return ValueKind.SCALAR
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, BaseModel):
        return ValueKind.SERIALIZABLE
    if isinstance(value, (list, tuple, set, frozenset)):
        return ValueKind.ARRAY_LIKE
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return ValueKind.ARRAY_LIKE
    if callable(getattr(value, "to_dict", None)) and not isinstance(value, type):
        return ValueKind.ARRAY_LIKE
    if type(value).__str__ is not object.__str__:
        return ValueKind.STRINGABLE
    return ValueKind.OPAQUE


def _dump_model(model: BaseModel) -> Any:
    try:
        return model.model_dump(mode="json")
    except PydanticSerializationError:
        # Fields without a JSON form keep their Python values for the caller to reduce.
        return model.model_dump()


def _expand(value: Any) -> Any:
    """Turn an array-like or serializable value into a plain dict or list."""
    if isinstance(value, BaseModel):
        return _dump_model(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: getattr(value, field.name) for field in dataclasses.fields(value)}
    return value.to_dict()


def _separate(value: Any) -> tuple[Any, Any | None]:
    kind = classify(value)
    if kind is ValueKind.FILE_LIKE:
        return None, value
    if kind is ValueKind.SERIALIZABLE:
        # Python mode keeps uploads as leaves; models without uploads use their JSON form.
        model_input, model_files = _separate(value.model_dump())
        if model_files is None:
            return _dump_model(value), None
        return model_input, model_files
    if kind is ValueKind.ARRAY_LIKE:
        value = _expand(value)

    if isinstance(value, Mapping):
        nested_input, nested_files = separate_files(value)
        return nested_input, nested_files or None

    if isinstance(value, list):
        items: list[Any] = []
        files: dict[int, Any] = {}
        for index, item in enumerate(value):
            item_input, item_files = _separate(item)
            items.append(item_input)
            if item_files is not None:
                files[index] = item_files
        return items, files or None

    return value, None


def separate_files(payload: Mapping[Any, Any]) -> tuple[dict[Any, Any], dict[Any, Any]]:
    """Split file-like leaves out of ``payload``.

    Every file is replaced by ``None`` in the returned input and stored in the
    returned file set under the same key path. List positions are keyed by
    their index. Nested file sets are only kept when they are non-empty.
    """
    input_values: dict[Any, Any] = {}
    files: dict[Any, Any] = {}

    for key, value in payload.items():
        key_input, key_files = _separate(value)
        input_values[key] = key_input
        if key_files is not None:
            files[key] = key_files

    return input_values, files


def normalize_for_request(value: Any) -> Any:
    """Reduce ``value`` to ``None``, scalars and nested lists/dicts of them.

    Objects that cannot be reduced are replaced with ``None``. This is lossy
    on purpose; the drop is logged at debug level.
    """
    kind = classify(value)

    if kind is ValueKind.SCALAR:
        return value
    if kind is ValueKind.ENUM:
        underlying = value.value
        if classify(underlying) is ValueKind.SCALAR:
            return underlying
        return value.name
    if kind is ValueKind.MAPPING:
        return {key: normalize_for_request(item) for key, item in value.items()}
    if kind in (ValueKind.ARRAY_LIKE, ValueKind.SERIALIZABLE):
        expanded = _expand(value)
        if isinstance(expanded, list):
            return [normalize_for_request(item) for item in expanded]
        return normalize_for_request(expanded)
    if kind is ValueKind.STRINGABLE:
        return str(value)

    logger.debug(
        "Dropping value that cannot be normalized for the request input.",
        extra={"operation": "normalize_dropped", "valueType": type(value).__name__},
    )
    return None


def _merge_value(current: Any, file_value: Any) -> Any:
    if not isinstance(file_value, Mapping):
        return file_value

    if isinstance(current, list):
        merged_list = list(current)
        for index, nested in file_value.items():
            if not isinstance(index, int):
                continue
            while len(merged_list) <= index:
                merged_list.append(None)
            merged_list[index] = _merge_value(merged_list[index], nested)
        return merged_list

    base = dict(current) if isinstance(current, Mapping) else {}
    for key, nested in file_value.items():
        base[key] = _merge_value(base.get(key), nested)
    return base


def merge_files(input_values: Mapping[Any, Any], files: Mapping[Any, Any]) -> dict[Any, Any]:
    """Put file leaves back into their slots of the input payload."""
    merged = dict(input_values)
    for key, file_value in files.items():
        merged[key] = _merge_value(merged.get(key), file_value)
    return merged


__all__ = [
    "ValueKind",
    "classify",
    "merge_files",
    "normalize_for_request",
    "separate_files",
]
