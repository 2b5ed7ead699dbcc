"""Clip data models: the variable bag and the output contract."""

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import RenderError
from ..naming import sanitize_note_name
from .template import TemplateBehavior

# Closed set of value shapes a template can see
Scalar = Union[str, int, float, bool]
HighlightMapping = dict[str, Union[Scalar, list[str]]]
VariableValue = Union[Scalar, list[str], list[HighlightMapping], dict[str, Scalar], None]

# Template-facing keys, in field-table order
VARIABLE_KEYS = (
    "title",
    "url",
    "content",
    "contentHtml",
    "selection",
    "selectionHtml",
    "author",
    "description",
    "domain",
    "favicon",
    "image",
    "site",
    "date",
    "time",
    "published",
    "words",
    "noteName",
    "fullHtml",
    "highlights",
    "meta",
)


def domain_of(url: str) -> str:
    """Return the host component of ``url``, or an empty string."""
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    return len(text.split())


@dataclass(frozen=True)
class Highlight:
    """A user highlight carried along with the page."""

    type: str
    id: str
    content: str
    notes: list[str] = field(default_factory=list)

    def as_mapping(self) -> HighlightMapping:
        return {"type": self.type, "id": self.id, "content": self.content, "notes": list(self.notes)}


class PreprocessedPage(BaseModel):
    """
    Page data gathered by an in-browser preprocessing script.

    Its metadata is usually better than what can be recovered from raw
    HTML, so non-empty values override the extracted ones.
    """

    url: str
    title: str = ""
    html: str = ""
    selected_html: str = Field("", alias="selectedHtml")
    content_html: str = Field("", alias="contentHtml")
    meta: dict[str, str] = Field(default_factory=dict)
    author: str = ""
    description: str = ""
    published: str = ""
    image: str = ""
    site: str = ""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Fields a preprocessing source may override
OVERRIDABLE_FIELDS = ("title", "author", "description", "published", "image", "site")


@dataclass(frozen=True)
class ClipVariables:
    """
    The variable bag produced by extraction and consumed by rendering.

    Build one with :meth:`from_content` so the derived fields (``domain``,
    ``words``, ``note_name``) stay consistent with their sources.
    """

    title: str
    url: str
    content: str
    content_html: str
    domain: str
    date: str
    time: str
    words: int
    note_name: str
    selection: str = ""
    selection_html: str = ""
    author: str = ""
    description: str = ""
    favicon: str = ""
    image: str = ""
    site: str = ""
    published: str = ""
    full_html: str = ""
    highlights: tuple[Highlight, ...] = ()
    meta: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_content(
        cls,
        title: str,
        url: str,
        content: str,
        content_html: str,
        timestamp: str,
        **optional: Any,
    ) -> "ClipVariables":
        """Create a bag, deriving domain, word count and note name."""
        if "highlights" in optional:
            optional["highlights"] = tuple(optional["highlights"] or ())
        return cls(
            title=title,
            url=url,
            content=content,
            content_html=content_html,
            domain=domain_of(url),
            date=timestamp,
            time=timestamp,
            words=count_words(content),
            note_name=sanitize_note_name(title),
            **optional,
        )

    def with_overrides(self, source: PreprocessedPage) -> "ClipVariables":
        """Return a copy using the non-empty metadata of ``source``."""
        changes: dict[str, Any] = {}
        for name in OVERRIDABLE_FIELDS:
            value = getattr(source, name).strip()
            if value:
                changes[name] = value
        if "title" in changes:
            changes["note_name"] = sanitize_note_name(changes["title"])
        if source.meta:
            merged = dict(self.meta)
            for key, value in source.meta.items():
                merged.setdefault(key, value)
            changes["meta"] = merged
        return replace(self, **changes) if changes else self

    def as_template_variables(self) -> dict[str, VariableValue]:
        """Map the bag onto the keys templates reference."""
        return {
            "title": self.title,
            "url": self.url,
            "content": self.content,
            "contentHtml": self.content_html,
            "selection": self.selection,
            "selectionHtml": self.selection_html,
            "author": self.author,
            "description": self.description,
            "domain": self.domain,
            "favicon": self.favicon,
            "image": self.image,
            "site": self.site,
            "date": self.date,
            "time": self.time,
            "published": self.published,
            "words": self.words,
            "noteName": self.note_name,
            "fullHtml": self.full_html,
            "highlights": [h.as_mapping() for h in self.highlights],
            "meta": dict(self.meta),
        }


class ClipRequest(BaseModel):
    """What the vault writer receives."""

    note_name: str = Field(..., alias="noteName")
    content: str
    path: str = ""
    vault: Optional[str] = None
    behavior: TemplateBehavior = TemplateBehavior.CREATE
    properties: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


@dataclass
class ClipResult:
    """A clip request plus the render error it recovered from, if any."""

    request: ClipRequest
    error: Optional[RenderError] = None

    @property
    def used_fallback(self) -> bool:
        return self.error is not None
