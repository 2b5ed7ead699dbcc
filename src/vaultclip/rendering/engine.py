"""Template string rendering: interpolation, filters, if/for blocks."""

import logging
import re
from typing import Any, Mapping, Union

from ..exceptions import RenderError
from ..models.clip import ClipVariables
from .filters import apply_chain, stringify

logger = logging.getLogger(__name__)

Variables = Union[ClipVariables, Mapping[str, Any]]

_NAME = r"[A-Za-z_]\w*(?:\.[\w:-]+)*"

_PLAIN_RE = re.compile(r"\{\{\s*(" + _NAME + r")\s*\}\}")
_PIPE_RE = re.compile(r"\{\{([^|}]+)\|([^}]+)\}\}")
_IF_RE = re.compile(r"\{%\s*if\s+(" + _NAME + r")\s*%\}(.*?)\{%\s*endif\s*%\}", re.DOTALL)
_FOR_RE = re.compile(r"\{%\s*for\s+(\w+)\s+in\s+(\w+)\s*%\}(.*?)\{%\s*endfor\s*%\}", re.DOTALL)
_BLOCK_TAG_RE = re.compile(r"\{%.*?%\}", re.DOTALL)
_SLOT_RE = re.compile("\ue000(\\d+)\ue001")
_SENTINEL_RE = re.compile("[\ue000\ue001]")

_MISSING = object()


def template_variables(variables: Variables) -> Mapping[str, Any]:
    """Return the key to value mapping templates see."""
    if isinstance(variables, ClipVariables):
        return variables.as_template_variables()
    return variables


def lookup(variables: Mapping[str, Any], name: str) -> Any:
    """Resolve ``name`` or ``name.key`` (into a mapping value); ``_MISSING`` if absent."""
    head, _, rest = name.partition(".")
    value = variables.get(head, _MISSING)
    for part in rest.split(".") if rest else ():
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


def is_truthy(value: Any) -> bool:
    """Truthiness for ``{% if %}``: the strings ``"0"`` and ``"false"`` are false."""
    if value is None or value is _MISSING:
        return False
    if isinstance(value, str):
        return value not in ("", "0", "false")
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return bool(value)


class _Slots:
    """Holds substituted values out of the text until rendering is done."""

    def __init__(self) -> None:
        self._values: list[str] = []

    def put(self, value: Any) -> str:
        self._values.append(stringify(value))
        return f"\ue000{len(self._values) - 1}\ue001"

    def fill(self, text: str) -> str:
        return _SLOT_RE.sub(lambda m: self._values[int(m.group(1))], text)


def render_string(template_string: str, variables: Variables) -> str:
    """
    Render a template string against a variable bag.

    One pass, in a fixed order: plain ``{{name}}`` references to known
    keys, then ``{{name|filter}}`` pipelines, then ``{% if %}`` blocks, then
    ``{% for %}`` blocks; whatever ``{{identifier}}`` is left resolves to an
    empty string. Prompt markers (``{{"..."}}``) are left in place.

    Substituted values are inserted verbatim: page text that happens to
    contain template syntax is never evaluated.

    Args:
        template_string: Template text
        variables: ``ClipVariables`` or a plain mapping

    Returns:
        Rendered text

    Raises:
        RenderError: For empty filter names, non-integer slice bounds, and
            block tags left over after the if/for passes (unbalanced,
            nested or unsupported)
    """
    values = template_variables(variables)
    slots = _Slots()

    def plain(m: "re.Match[str]") -> str:
        value = lookup(values, m.group(1))
        return m.group(0) if value is _MISSING else slots.put(value)

    def pipeline(m: "re.Match[str]") -> str:
        name = m.group(1).strip()
        if name.startswith(('"', "\\")):
            return m.group(0)
        value = lookup(values, name)
        if value is _MISSING or value is None:
            return ""
        return slots.put(apply_chain(value, m.group(2)))

    def conditional(m: "re.Match[str]") -> str:
        return m.group(2) if is_truthy(lookup(values, m.group(1))) else ""

    def loop(m: "re.Match[str]") -> str:
        item_name, array_name, body = m.groups()
        items = values.get(array_name)
        if not isinstance(items, (list, tuple)):
            return ""
        ref = re.compile(r"\{\{\s*" + re.escape(item_name) + r"(?:\.([\w-]+))?\s*\}\}")
        return "".join(ref.sub(lambda r: _item_ref(r, item, slots), body) for item in items)

    result = _SENTINEL_RE.sub(lambda m: slots.put(m.group(0)), template_string)
    result = _PLAIN_RE.sub(plain, result)
    result = _PIPE_RE.sub(pipeline, result)
    result = _IF_RE.sub(conditional, result)
    result = _FOR_RE.sub(loop, result)
    result = _PLAIN_RE.sub("", result)

    leftover = _BLOCK_TAG_RE.search(result)
    if leftover:
        raise RenderError(f"Unsupported or unbalanced block tag: {leftover.group(0)[:60]!r}")

    return slots.fill(result)


def _item_ref(m: "re.Match[str]", item: Any, slots: _Slots) -> str:
    prop = m.group(1)
    if isinstance(item, Mapping):
        if prop is None:
            return slots.put(item)
        if prop not in item:
            return m.group(0)
        return slots.put(item[prop])
    if prop is not None:
        return m.group(0)
    return slots.put(item)


class TemplateEngine:
    """
    Renders template strings against one variable bag.

    Converts the bag once and reuses it for every string of a template
    (note name, body and each property value).

    Example:
        engine = TemplateEngine(variables)
        engine.render("{{title|upper}}")
    """

    def __init__(self, variables: Variables):
        self.variables = dict(template_variables(variables))

    def render(self, template_string: str) -> str:
        return render_string(template_string, self.variables)
