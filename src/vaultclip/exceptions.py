"""Exception hierarchy for vaultclip."""


class VaultclipError(Exception):
    """Base exception for vaultclip."""


class ExtractionError(VaultclipError):
    """Raised when no content can be derived from a page."""


class RenderError(VaultclipError):
    """Raised when a template uses syntax the engine cannot evaluate."""


class TemplateImportError(VaultclipError):
    """Raised when a template record fails schema validation."""

    def __init__(self, message: str, name: str = ""):
        super().__init__(message)
        self.name = name


class FetchError(VaultclipError):
    """Raised when a page cannot be fetched."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(VaultclipError):
    """Raised when settings are missing or invalid."""
