"""
xl_odata.api.models - Pydantic models for API responses
========================================================
"""

from typing import Dict
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus the column loading state of the entity set."""

    status: str = Field(default="ok", json_schema_extra={"example": "ok"})
    columns: str = Field(
        description="uninitialized, loading, ready or failed",
        json_schema_extra={"example": "ready"},
    )


class ServiceInfo(BaseModel):
    """Service description served at the root path."""

    name: str
    version: str
    description: str
    endpoints: Dict[str, str]


class ODataErrorDetail(BaseModel):
    code: str
    message: str


class ODataError(BaseModel):
    """OData JSON error body: ``{"error": {"code": ..., "message": ...}}``."""

    error: ODataErrorDetail

    @classmethod
    def of(cls, code: str, message: str) -> "ODataError":
        return cls(error=ODataErrorDetail(code=code, message=message))
