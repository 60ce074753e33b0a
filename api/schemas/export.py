"""Pydantic schemas for the export and preview endpoints."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class ExportRequest(BaseModel):
    """Document payload as produced by the editor, plus export options."""
    document: Dict[str, Any]
    options: Dict[str, Any] = Field(default_factory=dict)


class PreviewRequest(BaseModel):
    screenshot: Dict[str, Any]
    framed: bool = False


class PreviewResponse(BaseModel):
    screenshot_id: str
    data_url: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
