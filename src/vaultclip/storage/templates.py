"""Template interchange (JSON import/export) and template repositories."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from ..exceptions import ConfigError, TemplateImportError
from ..models.template import Template

logger = logging.getLogger(__name__)

TemplateData = Union[str, bytes, Mapping[str, Any]]


def _load_json(data: Union[str, bytes]) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise TemplateImportError(f"Invalid template JSON: {e}") from e


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "template"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def import_template(data: TemplateData) -> Template:
    """
    Import one template from its JSON interchange form.

    A missing ``id`` is generated; unknown keys are ignored. An unknown
    ``behavior`` or a wrongly typed field is an error.

    Args:
        data: JSON text or bytes, or an already-decoded mapping

    Returns:
        The validated template

    Raises:
        TemplateImportError: On malformed JSON or schema failure
    """
    record = _load_json(data) if isinstance(data, (str, bytes)) else data
    if not isinstance(record, Mapping):
        raise TemplateImportError(f"Template must be a JSON object, got {type(record).__name__}")

    name = str(record.get("name") or "")
    try:
        return Template.model_validate(dict(record))
    except ValidationError as e:
        raise TemplateImportError(f"Invalid template {name!r}: {_describe(e)}", name=name) from e


@dataclass
class TemplateImportResult:
    """Outcome of a batch import; one bad template does not sink the rest."""

    imported: list[Template] = field(default_factory=list)
    errors: list[TemplateImportError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def import_templates(data: Union[str, bytes, Mapping[str, Any], list[Any]]) -> TemplateImportResult:
    """
    Import one template object or a list of them.

    Errors are collected per template.

    Raises:
        TemplateImportError: If ``data`` is not valid JSON at all
    """
    records = _load_json(data) if isinstance(data, (str, bytes)) else data
    if not isinstance(records, list):
        records = [records]

    result = TemplateImportResult()
    for index, record in enumerate(records):
        try:
            result.imported.append(import_template(record))
        except TemplateImportError as e:
            logger.warning(f"Skipping template #{index + 1}: {e}")
            result.errors.append(e)
    return result


def export_template(template: Template, indent: Optional[int] = 2) -> str:
    """Serialize a template to camelCase interchange JSON."""
    return json.dumps(template.to_interchange(), indent=indent, ensure_ascii=False)


class TemplateRepository(Protocol):
    """
    Protocol for template storage.

    Passed explicitly to whatever needs templates; there is no global
    template store.
    """

    def load(self) -> list[Template]:
        """Return every stored template, in stored order."""
        ...

    def get(self, template_id: str) -> Optional[Template]:
        ...

    def default(self, template_id: Optional[str] = None) -> Optional[Template]:
        """Return ``template_id`` if stored, else the first template."""
        ...

    def save(self, template: Template) -> None:
        """Insert, or replace the template with the same id."""
        ...

    def delete(self, template_id: str) -> bool:
        """Remove a template; returns whether one was removed."""
        ...


class JsonTemplateRepository:
    """
    Templates persisted as a JSON list in a single file.

    A missing file is an empty repository. A file that cannot be parsed
    loads as empty (with a warning) so a damaged store never blocks
    clipping, but it is never overwritten: ``save`` and ``delete`` raise
    ``ConfigError`` until it is repaired. Stored records that fail
    validation are skipped on load and written back unchanged.

    Example:
        repo = JsonTemplateRepository(Path("~/.vaultclip/templates.json").expanduser())
        repo.save(template)
        repo.default("3f1c...")
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> tuple[list[Template], list[Any]]:
        """
        Read the store.

        Returns:
            The valid templates, and the raw records that failed validation

        Raises:
            ConfigError: If the file exists but is not a readable JSON list
        """
        if not self.path.exists():
            return [], []
        try:
            with open(self.path, encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigError(f"Could not load templates from {self.path}: {e}") from e

        if not isinstance(records, list):
            raise ConfigError(f"Could not load templates from {self.path}: expected a JSON list")

        templates: list[Template] = []
        rejected: list[Any] = []
        for record in records:
            try:
                templates.append(import_template(record))
            except TemplateImportError as e:
                logger.warning(f"Skipping stored template in {self.path}: {e}")
                rejected.append(record)
        return templates, rejected

    def load(self) -> list[Template]:
        try:
            templates, _ = self._read()
        except ConfigError as e:
            logger.warning(str(e))
            return []
        return templates

    def _persist(self, templates: list[Template], rejected: list[Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [t.to_interchange() for t in templates] + rejected
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2, ensure_ascii=False)

    def get(self, template_id: str) -> Optional[Template]:
        return next((t for t in self.load() if t.id == template_id), None)

    def default(self, template_id: Optional[str] = None) -> Optional[Template]:
        templates = self.load()
        if template_id:
            for template in templates:
                if template.id == template_id:
                    return template
            logger.debug(f"Default template {template_id} not found, using the first one")
        return templates[0] if templates else None

    def save(self, template: Template) -> None:
        templates, rejected = self._read()
        for index, existing in enumerate(templates):
            if existing.id == template.id:
                templates[index] = template
                break
        else:
            templates.append(template)
        self._persist(templates, rejected)

    def delete(self, template_id: str) -> bool:
        templates, rejected = self._read()
        remaining = [t for t in templates if t.id != template_id]
        if len(remaining) == len(templates):
            return False
        self._persist(remaining, rejected)
        return True
