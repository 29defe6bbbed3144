"""Pydantic models for invocation results and configuration reports."""

from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

CONNECTION_REFUSED_DETAIL = "Connection refused - API endpoint not accessible"


class ErrorResult(BaseModel):
    """Error payload returned to the MCP host instead of raising."""

    error: str = Field(description="Human-readable failure message")
    detail: Any = Field(default=None, description="Parsed error body, if any")
    status: int = Field(description="HTTP status, 0 when no response was received")

    @field_validator("error")
    @classmethod
    def error_not_empty(cls, v: str) -> str:
        return v or "Request failed"

    class Config:
        extra = "forbid"


class ConfigurationStatusResponse(BaseModel):
    base_url: str = Field(description="Resolved store URL used for requests")
    config: Dict[str, Any] = Field(description="Current configuration (masked)")
    tool_count: int = Field(default=0, description="Number of discovered tools")

    class Config:
        extra = "allow"
