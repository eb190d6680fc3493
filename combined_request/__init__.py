"""Form requests shared between FastAPI routes and server-side components."""

from combined_request.authorization import AuthorizationResponse
from combined_request.component import Component, StatefulComponent
from combined_request.errors import (
    AuthorizationError,
    FormRequestError,
    FormValidationError,
    MissingParameterError,
    register_error_handlers,
)
from combined_request.notifier import notify_authorization_using
from combined_request.request import CombinedFormRequest
from combined_request.validator import MessageBag, Validator

__all__ = [
    "AuthorizationError",
    "AuthorizationResponse",
    "CombinedFormRequest",
    "Component",
    "FormRequestError",
    "FormValidationError",
    "MessageBag",
    "MissingParameterError",
    "StatefulComponent",
    "Validator",
    "notify_authorization_using",
    "register_error_handlers",
]
