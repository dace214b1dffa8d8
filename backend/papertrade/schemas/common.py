"""
Pydantic Schemas - Common
PaperTrade Virtual Trading Platform

Shared base schema and the response envelope:

    {"success": true, "data": ...}
    {"success": false, "error": {"message": ..., "code": ...}}
"""

from decimal import Decimal
from typing import Annotated, Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


T = TypeVar("T")

# Decimals travel as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# =============================================================================
# Base Schemas
# =============================================================================

class BaseSchema(BaseModel):
    """Base schema: ORM-readable, camelCase on the wire."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope."""
    success: bool = True
    data: T


class ErrorBody(BaseModel):
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error envelope."""
    success: bool = False
    error: ErrorBody
