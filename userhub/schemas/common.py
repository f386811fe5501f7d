"""
Common schemas used across multiple endpoints.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str

    class Config:
        json_schema_extra = {"example": {"message": "Operation successful"}}


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint."""
    message: str
    code: str
    details: Optional[Dict[str, List[str]]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Invalid data",
                "code": "VALIDATION_ERROR",
                "details": {"email": ["value is not a valid email address"]}
            }
        }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "OK"
    timestamp: str
    uptime: float
