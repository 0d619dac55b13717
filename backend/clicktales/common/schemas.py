"""Shared Pydantic schemas: camelCase wire format and the response envelope."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire; either is accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel):
    """Envelope shared by every endpoint."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None
    requires_otp: Optional[bool] = None
