"""Pydantic settings models for vaultclip."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ConfigError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


class ExtractionConfig(BaseModel):
    """Tuning for main-content selection and cleanup."""

    content_selectors: Optional[list[str]] = Field(
        None,
        description="CSS selectors tried in order for the article body (overrides defaults)",
    )
    remove_selectors: list[str] = Field(
        default_factory=list,
        description="Extra CSS selectors removed from the selected content",
    )
    min_content_score: int = Field(
        200,
        ge=0,
        description="Minimum heuristic score for a fallback candidate to beat <body>",
    )
    nav_penalty: int = Field(
        50,
        ge=0,
        description="Score deducted per navigation-like descendant",
    )
    link_density_threshold: float = Field(
        0.8,
        gt=0,
        le=1,
        description="Share of anchor text above which a short block counts as link-dominated",
    )
    link_block_max_text: int = Field(
        300,
        ge=0,
        description="Blocks with at least this much text are never dropped for link density",
    )
    boilerplate_max_text: int = Field(
        200,
        ge=0,
        description="Copyright/cookie notices are only dropped below this text length",
    )
    resolve_links: bool = Field(True, description="Make href/src attributes absolute")

    model_config = {"extra": "forbid"}


class FetchConfig(BaseModel):
    """Configuration for the page fetcher."""

    user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent header")
    timeout: float = Field(30.0, gt=0, description="Request timeout in seconds")
    max_html_bytes: int = Field(
        10 * 1024 * 1024,
        ge=0,
        description="Reject pages larger than this (0 = unlimited)",
    )

    model_config = {"extra": "forbid"}


class ClipperSettings(BaseModel):
    """
    Root settings model for vaultclip.

    YAML format:
        default_vault: Notes
        default_template_id: 3f1c...
        extraction:
          min_content_score: 150
        fetch:
          timeout: 15
    """

    default_vault: str = Field("", description="Vault used when a template names none")
    default_template_id: Optional[str] = Field(None, description="Template picked by default")
    auto_clip: bool = Field(False, description="Clip without showing a preview")

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "WARNING",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize settings to a YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ClipperSettings":
        """Load settings from a YAML string.

        Raises:
            ConfigError: On invalid YAML or settings that fail validation
        """
        import yaml

        try:
            data = yaml.safe_load(yaml_str) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid settings YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Settings YAML must be a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    @classmethod
    def from_yaml_file(cls, path: Path) -> "ClipperSettings":
        """Load settings from a YAML file."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not read settings file {path}: {e}") from e
        return cls.from_yaml(text)
