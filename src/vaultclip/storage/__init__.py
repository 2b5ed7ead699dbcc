"""Template storage and interchange."""

from .templates import (
    JsonTemplateRepository,
    TemplateImportResult,
    TemplateRepository,
    export_template,
    import_template,
    import_templates,
)

__all__ = [
    "JsonTemplateRepository",
    "TemplateImportResult",
    "TemplateRepository",
    "export_template",
    "import_template",
    "import_templates",
]
