"""
Customize request and response schemas.
"""

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CustomizeRequestBody(BaseModel):
    """
    Fields a customize request may carry, from the query string or the body.

    ``customized`` is accepted either as a mapping or as a JSON-encoded
    string; anything that does not decode to a mapping is treated as absent.
    """

    model_config = ConfigDict(extra="allow")

    customize_transaction_uuid: Optional[str] = None
    nonce: Optional[str] = None
    customized: Optional[Union[Dict[str, Any], str]] = None
    theme: Optional[str] = None
    wp_customize: Optional[str] = None
    customize_messenger_channel: Optional[str] = None

    @field_validator("customized", mode="before")
    @classmethod
    def decode_customized(cls, value: Any) -> Optional[Dict[str, Any]]:
        if value is None or isinstance(value, dict):
            return value
        if isinstance(value, (str, bytes)):
            try:
                decoded = json.loads(value)
            except ValueError:
                return None
            return decoded if isinstance(decoded, dict) else None
        return None

    @property
    def is_customize_request(self) -> bool:
        return (self.wp_customize or "").lower() == "on"


class AjaxResponse(BaseModel):
    """Envelope for every customize endpoint."""

    success: bool
    data: Any = None


class ErrorData(BaseModel):
    error_code: str
    message: Optional[str] = None


class UpdateTransactionData(BaseModel):
    transaction_uuid: str
    transaction_settings: Dict[str, Any] = Field(default_factory=dict)
    rejected_settings: Dict[str, str] = Field(default_factory=dict)


class SaveData(BaseModel):
    """Save response; hooks may add arbitrary keys."""

    model_config = ConfigDict(extra="allow")

    transaction_uuid: str
    transaction_status: str
    transaction_settings: Dict[str, Any] = Field(default_factory=dict)


class TreeNodeResponse(BaseModel):
    type: str
    id: str
    priority: int
    children: List["TreeNodeResponse"] = Field(default_factory=list)


class ActiveTreeData(BaseModel):
    containers: List[TreeNodeResponse] = Field(default_factory=list)
    panels: List[str] = Field(default_factory=list)
    sections: List[str] = Field(default_factory=list)
    controls: List[str] = Field(default_factory=list)
    control_types: List[str] = Field(default_factory=list)


class NoncesData(BaseModel):
    update: Optional[str] = None
    save: Optional[str] = None
