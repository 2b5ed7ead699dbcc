"""Template records and their interchange schema."""

import re
import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TemplateBehavior(str, Enum):
    """How a rendered clip is merged into the vault."""

    CREATE = "create"
    APPEND_SPECIFIC = "append-specific"
    PREPEND_SPECIFIC = "prepend-specific"
    APPEND_DAILY = "append-daily"
    PREPEND_DAILY = "prepend-daily"
    OVERWRITE = "overwrite"

    @classmethod
    def _missing_(cls, value: object) -> Optional["TemplateBehavior"]:
        # Accept camelCase spellings such as "appendSpecific"
        if isinstance(value, str):
            normalized = re.sub(r"(?<!^)(?=[A-Z])", "-", value.strip()).lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def is_daily(self) -> bool:
        return self in (TemplateBehavior.APPEND_DAILY, TemplateBehavior.PREPEND_DAILY)

    @property
    def display_name(self) -> str:
        return _BEHAVIOR_NAMES[self]


_BEHAVIOR_NAMES = {
    TemplateBehavior.CREATE: "Create new note",
    TemplateBehavior.APPEND_SPECIFIC: "Append to specific note",
    TemplateBehavior.PREPEND_SPECIFIC: "Prepend to specific note",
    TemplateBehavior.APPEND_DAILY: "Append to daily note",
    TemplateBehavior.PREPEND_DAILY: "Prepend to daily note",
    TemplateBehavior.OVERWRITE: "Overwrite existing note",
}


class PropertyType(str, Enum):
    """Frontmatter property types; each has its own YAML rendering."""

    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    DATE = "date"
    DATETIME = "datetime"
    MULTITEXT = "multitext"


def _new_id() -> str:
    return str(uuid.uuid4())


class TemplateProperty(BaseModel):
    """One frontmatter entry; ``value`` is itself a template string."""

    name: str = Field(..., min_length=1)
    value: str = ""
    type: PropertyType = PropertyType.TEXT
    id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("type", mode="before")
    @classmethod
    def _missing_type_is_text(cls, v: Any) -> Any:
        return PropertyType.TEXT if v is None else v


class Template(BaseModel):
    """
    A named rendering recipe.

    The interchange format uses camelCase keys (``noteNameFormat``,
    ``noteContentFormat``); Python code uses the snake_case attributes.
    Templates authored outside the app often lack an ``id``; one is
    generated on load so they can still be stored.

    Example:
        template = Template.model_validate({
            "name": "Article",
            "behavior": "create",
            "noteContentFormat": "# {{title}}\\n\\n{{content}}",
            "properties": [{"name": "source", "value": "{{url}}", "type": "text"}],
        })
    """

    id: str = Field(default_factory=_new_id)
    name: str
    behavior: TemplateBehavior = TemplateBehavior.CREATE
    note_name_format: str = Field("{{title}}", alias="noteNameFormat")
    path: str = ""
    note_content_format: str = Field("{{content}}", alias="noteContentFormat")
    properties: list[TemplateProperty] = Field(default_factory=list)
    triggers: Optional[list[str]] = None
    vault: Optional[str] = None
    context: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _generate_missing_id(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return _new_id()
        return v

    @field_validator("behavior", mode="before")
    @classmethod
    def _parse_behavior(cls, v: Any) -> Any:
        if isinstance(v, str):
            return TemplateBehavior(v)
        return v

    def to_interchange(self) -> dict[str, Any]:
        """Serialize using the camelCase interchange keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
