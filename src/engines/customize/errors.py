"""
Customize error taxonomy.

CustomizeError carries a stable machine-readable code and the HTTP status
the API layer should answer with. SettingValidationError is per-setting and
is recovered by the transaction, never surfaced as a request failure.
"""

from typing import Optional

from fastapi import status

# Request-shape and authorization codes returned by the session endpoints
BAD_NONCE = "bad_nonce"
BAD_METHOD = "bad_method"
CUSTOMIZE_NOT_ALLOWED = "customize_not_allowed"
INVALID_TRANSACTION_UUID = "invalid_customize_transaction_uuid"
MISSING_CUSTOMIZED_JSON = "missing_customized_json"
UNAUTHORIZED = "unauthorized"
NOT_PREVIEW = "not_preview"
INVALID_NONCE = "invalid_nonce"
TRANSACTION_PUBLISHED = "transaction_published"
THEME_NOT_ALLOWED = "theme_not_allowed"
STORAGE_ERROR = "storage_error"
FATAL_ERROR = "fatal_error"


class CustomizeError(Exception):
    """A request-level failure with a stable error code."""

    def __init__(
        self,
        code: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        message: Optional[str] = None,
    ):
        super().__init__(message or code)
        self.code = code
        self.status_code = status_code
        self.message = message

    def __repr__(self) -> str:
        return f"<CustomizeError {self.code} {self.status_code}>"


class SettingValidationError(ValueError):
    """A raw value could not be sanitized into a valid setting value."""

    def __init__(self, message: str, setting_id: Optional[str] = None):
        super().__init__(message)
        self.setting_id = setting_id
        self.message = message
