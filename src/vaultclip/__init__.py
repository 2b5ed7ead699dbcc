"""
vaultclip - Clip web pages into Markdown notes for a notes vault.

Usage:
    from vaultclip import Clipper, import_template

    clipper = Clipper()
    variables = clipper.extract_content(html, "https://blog.example.com/post")
    result = clipper.build_clip_request(import_template(template_json), variables)
    print(result.request.content)
"""

__version__ = "1.0.0"

from .core.clipper import Clipper, VaultWriter, extract_content, render_string, render_template
from .exceptions import (
    ConfigError,
    ExtractionError,
    FetchError,
    RenderError,
    TemplateImportError,
    VaultclipError,
)
from .models import (
    ClipperSettings,
    ClipRequest,
    ClipResult,
    ClipVariables,
    ExtractionConfig,
    FetchConfig,
    Highlight,
    PreprocessedPage,
    PropertyType,
    Template,
    TemplateBehavior,
    TemplateProperty,
)
from .rendering import PromptRequest, PromptResolver, register_filter, render_with_prompts
from .storage import (
    JsonTemplateRepository,
    TemplateImportResult,
    TemplateRepository,
    export_template,
    import_template,
    import_templates,
)
from .variables import VariableBuilder

__all__ = [
    "__version__",
    # Core
    "Clipper",
    "VariableBuilder",
    "VaultWriter",
    "extract_content",
    "render_string",
    "render_template",
    # Models
    "ClipRequest",
    "ClipResult",
    "ClipVariables",
    "Highlight",
    "PreprocessedPage",
    "PropertyType",
    "Template",
    "TemplateBehavior",
    "TemplateProperty",
    # Config
    "ClipperSettings",
    "ExtractionConfig",
    "FetchConfig",
    # Rendering
    "PromptRequest",
    "PromptResolver",
    "register_filter",
    "render_with_prompts",
    # Storage
    "JsonTemplateRepository",
    "TemplateImportResult",
    "TemplateRepository",
    "export_template",
    "import_template",
    "import_templates",
    # Errors
    "VaultclipError",
    "ExtractionError",
    "RenderError",
    "TemplateImportError",
    "FetchError",
    "ConfigError",
]
