"""
Pydantic schemas for API request/response validation.
"""

from src.schemas.customize import (
    CustomizeRequestBody,
    AjaxResponse,
    ErrorData,
    UpdateTransactionData,
    SaveData,
    TreeNodeResponse,
    ActiveTreeData,
    NoncesData,
)
from src.schemas.common import HealthResponse

__all__ = [
    # Customize
    "CustomizeRequestBody",
    "AjaxResponse",
    "ErrorData",
    "UpdateTransactionData",
    "SaveData",
    "TreeNodeResponse",
    "ActiveTreeData",
    "NoncesData",
    # Common
    "HealthResponse",
]
