"""Contract tests for validating form requests from components."""

from __future__ import annotations

import io
from typing import Any

import pytest
from fastapi import UploadFile

from combined_request import (
    AuthorizationResponse,
    CombinedFormRequest,
    FormValidationError,
    MissingParameterError,
    StatefulComponent,
)
from tests.fixtures import (
    FileUploadComponent,
    ProfileComponent,
    ProfileRequest,
    UnauthorizedProfileComponent,
)


@pytest.fixture(autouse=True)
def _reset_notifier():
    yield
    CombinedFormRequest.notify_authorization_using(None)


def _avatar() -> UploadFile:
    return UploadFile(file=io.BytesIO(b"\x89PNG fake image"), filename="avatar.jpg")


def test_validates_and_writes_normalized_values_back() -> None:
    component = ProfileComponent(name="Jane Doe", email="TEST@EXAMPLE.COM")

    component.call("save")

    assert not component.has_errors()
    assert component.email == "test@example.com"
    assert component.last_validated == {
        "name": "Jane Doe",
        "email": "test@example.com",
    }


def test_after_validator_callbacks_reject_without_writing_back() -> None:
    component = ProfileComponent(name="john doe", email="JOHN@EXAMPLE.COM")

    with pytest.raises(FormValidationError) as exc_info:
        ProfileRequest.validate_from_component(component)

    assert exc_info.value.messages == {"name": ["Who the hell are you?"]}
    assert exc_info.value.error_bag == "default"
    assert component.email == "JOHN@EXAMPLE.COM"
    assert component.last_validated is None


def test_action_dispatch_records_rule_errors_on_component() -> None:
    component = ProfileComponent(name="John Doe", email="john@example.com")

    component.call("save")

    assert component.has_errors("name")
    assert component.get_error_bag() == {"name": ["Who the hell are you?"]}


def test_authorization_denial_becomes_field_error_and_notifies_once() -> None:
    notified: list[str] = []

    def notifier(component: Any, message: str) -> None:
        notified.append(message)
        component.add_error("authorization", message)

    CombinedFormRequest.notify_authorization_using(notifier)
    component = UnauthorizedProfileComponent(name="Jane Doe", email="jane@example.com")

    component.call("save")

    assert notified == ["Nope"]
    assert component.get_error_bag() == {"authorization": ["Nope"]}
    assert component.last_validated is None


def test_authorization_denial_without_notifier_still_raises() -> None:
    component = UnauthorizedProfileComponent(name="Jane Doe", email="jane@example.com")

    with pytest.raises(FormValidationError) as exc_info:
        component.save()

    assert exc_info.value.messages == {"authorization": ["Nope"]}


def test_failing_notifier_does_not_block_the_denial() -> None:
    def broken_notifier(component: Any, message: str) -> None:
        raise RuntimeError("toast service offline")

    CombinedFormRequest.notify_authorization_using(broken_notifier)
    component = UnauthorizedProfileComponent(name="Jane Doe", email="jane@example.com")

    with pytest.raises(FormValidationError) as exc_info:
        component.save()

    assert exc_info.value.first("authorization") == "Nope"


def test_boolean_denial_uses_default_message_and_error_bag() -> None:
    class LockedRequest(CombinedFormRequest):
        error_bag = "profile"

        def authorize(self) -> bool:
            return False

        def rules(self) -> dict[str, Any]:
            return {"name": str}

    with pytest.raises(FormValidationError) as exc_info:
        LockedRequest.validate_from_component(StatefulComponent(name="Jane"))

    assert exc_info.value.messages == {"authorization": ["This action is unauthorized."]}
    assert exc_info.value.error_bag == "profile"


def test_authorization_runs_before_rules() -> None:
    calls: list[str] = []

    class OrderedRequest(CombinedFormRequest):
        def authorize(self) -> AuthorizationResponse:
            calls.append("authorize")
            return AuthorizationResponse.deny("Stop")

        def with_validator(self, validator) -> None:
            calls.append("rules")

    with pytest.raises(FormValidationError):
        OrderedRequest.validate_from_component(StatefulComponent(name="Jane"))

    assert calls == ["authorize"]


def test_uploaded_files_are_available_to_validation() -> None:
    avatar = _avatar()
    component = FileUploadComponent(name="Jane", email="jane@example.com", avatar=avatar)

    component.call("save")

    assert not component.has_errors()
    assert component.last_validated is not None
    assert component.last_validated["avatar"] is avatar
    assert component.last_validated["avatar"].filename == "avatar.jpg"
    assert component.avatar is avatar


def test_missing_upload_fails_the_file_rule() -> None:
    component = FileUploadComponent(name="Jane", email="jane@example.com")

    component.call("save")

    assert component.has_errors("avatar")
    assert component.last_validated is None


def test_validated_is_memoized_per_attempt() -> None:
    counts = {"authorize": 0, "before": 0, "after": 0}

    class CountingRequest(CombinedFormRequest):
        def authorize(self) -> bool:
            counts["authorize"] += 1
            return True

        def rules(self) -> dict[str, Any]:
            return {"name": str}

        def before_validation(self) -> None:
            counts["before"] += 1

        def after_validation(self) -> None:
            counts["after"] += 1

    attempt = CountingRequest.from_component(StatefulComponent(name="Jane"))

    first = attempt.validated()
    second = attempt.validated()

    assert first == second == {"name": "Jane"}
    assert counts == {"authorize": 1, "before": 1, "after": 1}


def test_success_clears_previous_component_errors() -> None:
    component = ProfileComponent(name="Jane Doe", email="jane@example.com")
    component.add_error("name", "stale error")

    ProfileRequest.validate_from_component(component)

    assert component.get_error_bag() == {}


def test_rule_engine_sees_snapshot_with_normalized_values() -> None:
    seen: list[dict[str, Any]] = []

    class SnapshotRequest(CombinedFormRequest):
        def rules(self) -> dict[str, Any]:
            return {"tags": list[str]}

        def with_validator(self, validator) -> None:
            seen.append(validator.data)

    component = StatefulComponent(tags=("a", "b"), secret=object())

    validated = SnapshotRequest.validate_from_component(component)

    assert validated == {"tags": ["a", "b"]}
    assert seen[0]["tags"] == ["a", "b"]
    assert seen[0]["secret"] is None
    assert component.tags == ["a", "b"]


def test_required_parameters_fail_fast_when_building_from_component() -> None:
    class TeamRequest(CombinedFormRequest):
        required_parameters = frozenset({"team", "user"})

    with pytest.raises(MissingParameterError) as exc_info:
        TeamRequest.from_component(StatefulComponent(name="Jane"), {"team": None})

    assert exc_info.value.missing == ["team", "user"]
    assert "TeamRequest" in exc_info.value.message
    assert "team, user" in exc_info.value.message


def test_parameters_are_available_to_hooks() -> None:
    class TeamRequest(CombinedFormRequest):
        required_parameters = frozenset({"team"})

        def authorize(self) -> bool:
            return self.parameter("team") == "core"

        def rules(self) -> dict[str, Any]:
            return {"name": str}

    component = StatefulComponent(name="Jane")

    assert TeamRequest.validate_from_component(component, {"team": "core"}) == {"name": "Jane"}
    with pytest.raises(FormValidationError):
        TeamRequest.validate_from_component(component, {"team": "other"})


def test_validate_with_component_requires_a_component() -> None:
    with pytest.raises(ValueError, match="component instance is required"):
        ProfileRequest().validate_with_component()


def test_validate_with_component_accepts_a_late_component() -> None:
    component = ProfileComponent(name="Jane Doe", email="JANE@EXAMPLE.COM")

    validated = ProfileRequest().validate_with_component(component)

    assert validated["email"] == "jane@example.com"
    assert component.email == "jane@example.com"


def test_class_valued_state_does_not_break_validation() -> None:
    class Invoice:
        def to_dict(self) -> dict[str, Any]:
            return {"total": 10}

    class InvoiceRequest(CombinedFormRequest):
        def rules(self) -> dict[str, Any]:
            return {"name": str}

    component = StatefulComponent(name="Jane", model_class=Invoice)

    assert InvoiceRequest.validate_from_component(component) == {"name": "Jane"}
    assert component.model_class is Invoice


def test_nested_rule_errors_keep_their_dotted_field_names() -> None:
    class TagsRequest(CombinedFormRequest):
        def rules(self) -> dict[str, Any]:
            return {"tags": list[str]}

    with pytest.raises(FormValidationError) as exc_info:
        TagsRequest.validate_from_component(StatefulComponent(tags=["a", None]))

    assert list(exc_info.value.messages) == ["tags.1"]
    assert exc_info.value.errors()[0]["loc"] == ("tags", 1)
