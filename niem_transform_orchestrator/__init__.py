"""Orchestration and repair layer of the NIEM transform pipeline."""

from .errors import (
    BadRequestError,
    EngineNotAvailableError,
    EngineTimeoutError,
    InputRejectedError,
    InternalFailureError,
    NiemTransformError,
    ParseFailureError,
    TransformConfigurationError,
    UnsupportedVersionError,
)
from .models import DestinationFormat, SourceFormat, TransformResult, TransformSettings
from .pipeline import load_settings, transform

__all__ = [
    "BadRequestError",
    "DestinationFormat",
    "EngineNotAvailableError",
    "EngineTimeoutError",
    "InputRejectedError",
    "InternalFailureError",
    "NiemTransformError",
    "ParseFailureError",
    "SourceFormat",
    "TransformConfigurationError",
    "TransformResult",
    "TransformSettings",
    "UnsupportedVersionError",
    "load_settings",
    "transform",
]
