"""YAML frontmatter synthesis from typed template properties."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Union

from ..models.template import PropertyType, TemplateProperty
from .engine import TemplateEngine, Variables

logger = logging.getLogger(__name__)

# Unresolved prompt markers, plain and JSON-escaped
PROMPT_MARKERS = ('{{"', '{{\\"')

_QUOTE_TRIGGERS = (":", "#", '"', "'", "\n", "\r")
_INDICATOR_PREFIXES = ("[", "{", "&", "*", "!", "|", ">", "%", "@", "`", "- ", "? ")


def has_prompt_marker(value: str) -> bool:
    return any(marker in value for marker in PROMPT_MARKERS)


def is_blank(rendered: str) -> bool:
    """True when nothing but empty link/list brackets and whitespace remain."""
    return not rendered.replace("[[]]", "").replace("[]", "").strip()


def escape_yaml_value(value: str) -> str:
    """Quote a scalar when plain YAML would misread it."""
    needs_quotes = (
        any(trigger in value for trigger in _QUOTE_TRIGGERS)
        or value != value.strip(" ")
        or value.startswith(_INDICATOR_PREFIXES)
    )
    if not needs_quotes:
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r")
    return f'"{escaped}"'


@dataclass
class Frontmatter:
    """A rendered frontmatter block and the raw values behind it."""

    block: str = ""
    values: dict[str, str] = field(default_factory=dict)


class FrontmatterBuilder:
    """
    Builds YAML frontmatter from template properties.

    Properties are rendered in declaration order. A property is left out
    when its value still needs an LLM prompt, or renders to nothing but
    whitespace and empty ``[[]]``/``[]`` brackets. No block at all is
    emitted when every property is left out.

    Example:
        builder = FrontmatterBuilder()
        frontmatter = builder.build(
            [TemplateProperty(name="tags", value="a, b", type="multitext")],
            variables,
        )
        frontmatter.block  # "---\\ntags:\\n  - a\\n  - b\\n---\\n\\n"
    """

    def format_property(self, prop: TemplateProperty, rendered: str) -> list[str]:
        """Return the YAML lines for one rendered property."""
        if prop.type == PropertyType.MULTITEXT:
            items = [item.strip() for item in rendered.split(",")]
            items = [item for item in items if item and item != "[[]]"]
            if not items:
                return []
            if len(items) == 1:
                return [f"{prop.name}: {escape_yaml_value(items[0])}"]
            return [f"{prop.name}:"] + [f"  - {escape_yaml_value(item)}" for item in items]

        if prop.type == PropertyType.CHECKBOX:
            checked = rendered.strip().lower() == "true"
            return [f"{prop.name}: {'true' if checked else 'false'}"]

        return [f"{prop.name}: {escape_yaml_value(rendered)}"]

    def build(
        self,
        properties: Iterable[TemplateProperty],
        variables: Union[TemplateEngine, Variables],
    ) -> Frontmatter:
        """
        Render properties into a frontmatter block.

        Args:
            properties: Template properties, in declaration order
            variables: Variable bag, or an engine already bound to one

        Returns:
            The block (``---`` delimited, followed by a blank line) and the
            rendered value of every property that made it in

        Raises:
            RenderError: If a property value cannot be rendered
        """
        engine = variables if isinstance(variables, TemplateEngine) else TemplateEngine(variables)
        lines: list[str] = []
        values: dict[str, str] = {}

        for prop in properties:
            if has_prompt_marker(prop.value):
                logger.debug(f"Skipping property {prop.name!r}: unresolved prompt")
                continue
            rendered = engine.render(prop.value)
            if is_blank(rendered):
                continue
            prop_lines = self.format_property(prop, rendered)
            if not prop_lines:
                continue
            lines.extend(prop_lines)
            values[prop.name] = rendered

        if not lines:
            return Frontmatter()
        return Frontmatter(block="---\n" + "\n".join(lines) + "\n---\n\n", values=values)
