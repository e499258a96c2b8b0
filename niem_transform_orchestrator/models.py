"""Pydantic models for transform requests, results and settings."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from niem_transform_core.uris import CMF_URI, CMF_VERSION


class SourceFormat(str, Enum):
    """Formats a model can be transformed from."""
    XSD = "xsd"
    CMF = "cmf"


class DestinationFormat(str, Enum):
    """Formats a model can be transformed to."""
    CMF = "cmf"
    OWL = "owl"
    XSD = "xsd"
    JSON_SCHEMA = "json_schema"


class TransformResult(BaseModel):
    """Output of one transform request."""

    content: bytes = Field(..., description="Serialized output (text or zip archive)")
    media_type: str = Field(..., description="Media type of the content")
    filename: str = Field(..., description="Suggested output filename")


class TransformSettings(BaseModel):
    """Configuration for transform execution."""

    cmf_version: str = Field(default=CMF_VERSION, description="Supported CMF version")
    cmf_uri: str = Field(default=CMF_URI, description="Namespace URI marking a supported CMF document")
    engine: str = Field(default="reference", description="Registered conversion engine name")
    engine_timeout: Optional[float] = Field(
        default=300,
        description="Wall-clock budget per engine call in seconds (None disables)",
    )
    parallel_corrections: bool = Field(default=True, description="Correct XSD documents concurrently")
    max_workers: int = Field(default=4, ge=1, description="Worker threads for XSD corrections")
    first_match_on_ambiguity: bool = Field(
        default=False,
        description="Name an ambiguous generated element after the first matching property",
    )
    scratch_dir: Optional[Path] = Field(default=None, description="Root for scratch directories")

    @field_validator("engine_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Ensure the timeout is positive when set."""
        if v is not None and v <= 0:
            raise ValueError("engine_timeout must be positive or null")
        return v

    @field_validator("cmf_version", "cmf_uri", "engine")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()
