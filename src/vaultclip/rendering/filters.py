"""Template filters and the filter registry."""

import json
import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional, Union

from ..exceptions import RenderError
from ..naming import sanitize_note_name

logger = logging.getLogger(__name__)

FilterFunc = Callable[[Any, Optional[str]], Any]

# name -> filter; populated at import time, read-only while rendering
FILTERS: dict[str, FilterFunc] = {}

DEFAULT_DATE_FORMAT = "YYYY-MM-DD"

# Layouts tried after ISO 8601 and RFC 2822
DATE_LAYOUTS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %Y",
)

_QUOTES = "\"'"
_DATE_TOKEN_RE = re.compile(r"YYYY|MM|DD|HH|mm|ss")
# Split a chain on pipes that are not inside double quotes
_CHAIN_SPLIT_RE = re.compile(r'\|(?=(?:[^"]*"[^"]*")*[^"]*$)')


def stringify(value: Any) -> str:
    """Render a variable value as template text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def strip_quotes(text: str) -> str:
    """Strip one leading and one trailing quote character."""
    if text and text[0] in _QUOTES:
        text = text[1:]
    if text and text[-1] in _QUOTES:
        text = text[:-1]
    return text


def register_filter(name: str, func: Optional[FilterFunc] = None) -> Any:
    """
    Register a filter under ``name``.

    Usable directly or as a decorator:

        @register_filter("reverse")
        def reverse(value, arg):
            return stringify(value)[::-1]

    An existing filter with the same name is replaced.
    """

    def decorator(f: FilterFunc) -> FilterFunc:
        FILTERS[name] = f
        return f

    if func is not None:
        return decorator(func)
    return decorator


def parse_filter(spec: str) -> tuple[str, Optional[str]]:
    """
    Split ``name:arg`` at the first colon.

    Raises:
        RenderError: If the filter name is empty
    """
    name, sep, arg = spec.strip().partition(":")
    name = name.strip()
    if not name:
        raise RenderError(f"Empty filter name in {spec!r}")
    return name, strip_quotes(arg.strip()) if sep else None


def split_chain(chain: str) -> list[str]:
    """Split a filter chain on pipes outside double quotes."""
    return _CHAIN_SPLIT_RE.split(chain)


def apply_filter(value: Any, name: str, arg: Optional[str] = None) -> Any:
    """Apply one filter; unknown names pass the value through."""
    func = FILTERS.get(name)
    if func is None:
        logger.debug(f"Unknown filter {name!r}, passing value through")
        return value
    return func(value, arg)


def apply_chain(value: Any, chain: str) -> str:
    """Run ``value`` through a ``f1|f2:"arg"`` chain, left to right."""
    for spec in split_chain(chain):
        name, arg = parse_filter(spec)
        value = apply_filter(value, name, arg)
    return stringify(value)


def parse_date(text: str) -> Optional[datetime]:
    """Parse ISO 8601, RFC 2822 or a common date layout."""
    text = text.strip()
    if not text:
        return None

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        pass

    for layout in DATE_LAYOUTS:
        try:
            return datetime.strptime(text, layout)
        except ValueError:
            continue
    return None


def format_date(value: datetime, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    """Substitute ``YYYY MM DD HH mm ss`` tokens in ``fmt``."""
    tokens = {
        "YYYY": f"{value.year:04d}",
        "MM": f"{value.month:02d}",
        "DD": f"{value.day:02d}",
        "HH": f"{value.hour:02d}",
        "mm": f"{value.minute:02d}",
        "ss": f"{value.second:02d}",
    }
    return _DATE_TOKEN_RE.sub(lambda m: tokens[m.group(0)], fmt)


# --- Case -------------------------------------------------------------------


@register_filter("upper")
def upper(value: Any, arg: Optional[str]) -> str:
    return stringify(value).upper()


@register_filter("lower")
def lower(value: Any, arg: Optional[str]) -> str:
    return stringify(value).lower()


@register_filter("capitalize")
def capitalize(value: Any, arg: Optional[str]) -> str:
    text = stringify(value)
    return text[:1].upper() + text[1:]


@register_filter("title")
def title(value: Any, arg: Optional[str]) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), stringify(value))


@register_filter("kebab")
def kebab(value: Any, arg: Optional[str]) -> str:
    text = re.sub(r"\s+", "-", stringify(value).lower())
    return re.sub(r"[^a-z0-9-]", "", text)


@register_filter("snake")
def snake(value: Any, arg: Optional[str]) -> str:
    text = re.sub(r"\s+", "_", stringify(value).lower())
    return re.sub(r"[^a-z0-9_]", "", text)


@register_filter("camel")
def camel(value: Any, arg: Optional[str]) -> str:
    def fold(m: "re.Match[str]") -> str:
        return m.group(0).lower() if m.start() == 0 else m.group(0).upper()

    return re.sub(r"\s+", "", re.sub(r"^\w|[A-Z]|\b\w", fold, stringify(value)))


# --- Text -------------------------------------------------------------------


@register_filter("trim")
def trim(value: Any, arg: Optional[str]) -> str:
    return stringify(value).strip()


@register_filter("slice")
def slice_(value: Any, arg: Optional[str]) -> Union[str, list]:
    """``slice:"start,end"`` with Python (and JS) negative-index semantics."""
    if not arg:
        return value
    start_text, _, end_text = arg.partition(",")
    try:
        start = int(start_text) if start_text.strip() else 0
        end = int(end_text) if end_text.strip() else None
    except ValueError as e:
        raise RenderError(f"slice bounds must be integers, got {arg!r}") from e
    if isinstance(value, list):
        return value[start:end]
    return stringify(value)[start:end]


@register_filter("replace")
def replace(value: Any, arg: Optional[str]) -> str:
    """``replace:"search:replacement"``, literal, every occurrence."""
    text = stringify(value)
    if not arg or ":" not in arg:
        return text
    search, _, replacement = arg.partition(":")
    search = strip_quotes(search)
    if not search:
        return text
    return text.replace(search, strip_quotes(replacement))


@register_filter("length")
def length(value: Any, arg: Optional[str]) -> int:
    if isinstance(value, (list, tuple, dict)):
        return len(value)
    return len(stringify(value))


@register_filter("safe_name")
def safe_name(value: Any, arg: Optional[str]) -> str:
    return sanitize_note_name(stringify(value))


@register_filter("date")
def date(value: Any, arg: Optional[str]) -> str:
    text = stringify(value)
    parsed = parse_date(text)
    if parsed is None:
        return text
    return format_date(parsed, arg or DEFAULT_DATE_FORMAT)


# --- Markdown ---------------------------------------------------------------


@register_filter("wikilink")
def wikilink(value: Any, arg: Optional[str]) -> str:
    return f"[[{stringify(value)}]]"


@register_filter("link")
def link(value: Any, arg: Optional[str]) -> str:
    return f"[{stringify(value)}]"


@register_filter("blockquote")
def blockquote(value: Any, arg: Optional[str]) -> str:
    return "> " + stringify(value).replace("\n", "\n> ")


@register_filter("callout")
def callout(value: Any, arg: Optional[str]) -> str:
    body = stringify(value).replace("\n", "\n> ")
    return f"> [!{arg or 'info'}]\n> {body}"
