"""Vaultclip data, template and settings models."""

from .clip import (
    VARIABLE_KEYS,
    ClipRequest,
    ClipResult,
    ClipVariables,
    Highlight,
    PreprocessedPage,
    VariableValue,
)
from .config import ClipperSettings, ExtractionConfig, FetchConfig
from .template import PropertyType, Template, TemplateBehavior, TemplateProperty

__all__ = [
    # Clip
    "VARIABLE_KEYS",
    "ClipRequest",
    "ClipResult",
    "ClipVariables",
    "Highlight",
    "PreprocessedPage",
    "VariableValue",
    # Settings
    "ClipperSettings",
    "ExtractionConfig",
    "FetchConfig",
    # Templates
    "PropertyType",
    "Template",
    "TemplateBehavior",
    "TemplateProperty",
]
