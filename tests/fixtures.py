"""Form requests and components shared by the contract tests."""

from __future__ import annotations

from typing import Any

from fastapi import UploadFile
from pydantic import EmailStr

from combined_request import AuthorizationResponse, CombinedFormRequest, StatefulComponent
from combined_request.validator import Validator


class ProfileRequest(CombinedFormRequest):
    def authorize(self) -> bool | AuthorizationResponse:
        return AuthorizationResponse.allow()

    def rules(self) -> dict[str, Any]:
        return {
            "name": str,
            "email": EmailStr,
        }

    def before_validation(self) -> None:
        self.merge({"email": str(self.input("email", "")).lower()})

    def with_validator(self, validator: Validator) -> None:
        def reject_john_doe(validator: Validator) -> None:
            if str(self.input("name", "")).lower() == "john doe":
                validator.errors().add("name", "Who the hell are you?")

        validator.after(reject_john_doe)


class UnauthorizedProfileRequest(CombinedFormRequest):
    def authorize(self) -> bool | AuthorizationResponse:
        return AuthorizationResponse.deny("Nope")

    def rules(self) -> dict[str, Any]:
        return {
            "name": str,
            "email": EmailStr,
        }


class FileUploadRequest(CombinedFormRequest):
    def authorize(self) -> bool:
        return True

    def rules(self) -> dict[str, Any]:
        return {
            "name": str,
            "email": EmailStr,
            "avatar": UploadFile,
        }


class ProfileComponent(StatefulComponent):
    name: str = ""
    email: str = ""
    avatar: UploadFile | None = None
    last_validated: dict[str, Any] | None = None

    def save(self) -> None:
        self.last_validated = ProfileRequest.validate_from_component(self)


class UnauthorizedProfileComponent(StatefulComponent):
    name: str = ""
    email: str = ""
    last_validated: dict[str, Any] | None = None

    def save(self) -> None:
        self.last_validated = UnauthorizedProfileRequest.validate_from_component(self)


class FileUploadComponent(StatefulComponent):
    name: str = ""
    email: str = ""
    avatar: UploadFile | None = None
    last_validated: dict[str, Any] | None = None

    def save(self) -> None:
        self.last_validated = FileUploadRequest.validate_from_component(self)
