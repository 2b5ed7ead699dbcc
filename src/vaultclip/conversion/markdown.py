"""HTML to Markdown conversion."""

from __future__ import annotations

import logging
import re
from typing import Callable, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction

logger = logging.getLogger(__name__)

# Named entities decoded when they survive parsing (double-escaped input)
ENTITY_TABLE = {
    "nbsp": " ",
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "#39": "'",
    "#x27": "'",
    "lsquo": "'",
    "rsquo": "'",
    "ldquo": '"',
    "rdquo": '"',
    "mdash": "—",
    "ndash": "–",
    "hellip": "...",
}

# The same table for characters the parser already decoded
CHARACTER_TABLE = str.maketrans(
    {
        "\xa0": " ",
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
        "…": "...",
    }
)

BLOCK_TAGS = (
    "p",
    "div",
    "section",
    "article",
    "main",
    "header",
    "footer",
    "aside",
    "nav",
    "figure",
    "figcaption",
    "address",
    "details",
    "summary",
    "dl",
    "dt",
    "dd",
    "table",
    "thead",
    "tbody",
    "tfoot",
    "form",
    "fieldset",
    "center",
    "body",
    "html",
)

SKIP_TAGS = ("head", "script", "style", "noscript", "template", "iframe", "svg")

_ENTITY_RE = re.compile(r"&(#39|#x27|[a-zA-Z]+);")
_SPACE_RE = re.compile(r"[ \t\r\n\f]+")
_PLACEHOLDER_RE = re.compile("\x1a(\\d+)\x1a")
_NESTED_ITEM_RE = re.compile(r"^ +- ")
_LANGUAGE_RE = re.compile(r"^(?:language|lang)-(.+)$")


def decode_entities(text: str) -> str:
    """Decode the named entities of :data:`ENTITY_TABLE`; others are kept."""
    return _ENTITY_RE.sub(lambda m: ENTITY_TABLE.get(m.group(1), m.group(0)), text)


def normalize_characters(text: str) -> str:
    """Map typographic characters onto their plain equivalents."""
    return text.translate(CHARACTER_TABLE)


def normalize_whitespace(text: str) -> str:
    """
    Normalize Markdown whitespace.

    Strips trailing whitespace before newlines, collapses three or more
    consecutive newlines to two and trims the result. Applying it twice
    gives the same text as applying it once.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


class _Conversion:
    """Per-call state: base URL, list depth and protected code blocks."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url
        self.list_depth = 0
        self._code_blocks: list[str] = []

    def resolve(self, url: str) -> str:
        if self.base_url and not url.startswith(("#", "http://", "https://", "//", "data:", "mailto:", "tel:")):
            url = urljoin(self.base_url, url)
        return url.replace(" ", "%20")

    def protect(self, block: str) -> str:
        self._code_blocks.append(block)
        return f"\x1a{len(self._code_blocks) - 1}\x1a"

    def restore(self, text: str) -> str:
        return _PLACEHOLDER_RE.sub(lambda m: self._code_blocks[int(m.group(1))], text)


class HtmlToMarkdown:
    """
    Converts HTML content to clean Markdown.

    A fixed rule table is applied while walking the parsed tree, so nested
    markup and attribute order are handled structurally: headings, inline
    marks, links and images, lists, quotes and code each have a handler;
    every other element keeps its content and loses its markup.

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert("<h1>Title</h1><p>Some <b>bold</b> text</p>")
        # "# Title\\n\\nSome **bold** text"
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[Tag, _Conversion], str]] = {
            "strong": lambda el, st: self._wrap(el, st, "**"),
            "b": lambda el, st: self._wrap(el, st, "**"),
            "em": lambda el, st: self._wrap(el, st, "*"),
            "i": lambda el, st: self._wrap(el, st, "*"),
            "mark": lambda el, st: self._wrap(el, st, "=="),
            "a": self._anchor,
            "img": self._image,
            "ul": self._list,
            "ol": self._list,
            "li": self._orphan_item,
            "blockquote": self._blockquote,
            "pre": self._pre,
            "code": self._code,
            "br": lambda el, st: "\n",
            "hr": lambda el, st: "\n\n---\n\n",
            "tr": self._row,
            "td": self._cell,
            "th": self._cell,
        }
        for level in range(1, 7):
            self._handlers[f"h{level}"] = self._heading
        for name in BLOCK_TAGS:
            self._handlers[name] = self._block
        for name in SKIP_TAGS:
            self._handlers[name] = lambda el, st: ""

    def _node(self, node: object, state: _Conversion) -> str:
        if isinstance(node, (Comment, Doctype, Declaration, ProcessingInstruction, CData)):
            return ""
        if isinstance(node, NavigableString):
            text = _SPACE_RE.sub(" ", str(node))
            return decode_entities(normalize_characters(text))
        if isinstance(node, Tag):
            handler = self._handlers.get(node.name)
            if handler is None:
                return self._children(node, state)
            return handler(node, state)
        return ""

    def _children(self, element: Tag, state: _Conversion) -> str:
        parts: list[str] = []
        at_line_start = False
        for child in element.children:
            piece = self._node(child, state)
            if at_line_start:
                piece = piece.lstrip(" ")
            if not piece:
                continue
            parts.append(piece)
            at_line_start = piece.endswith("\n")
        return "".join(parts)

    def _block(self, element: Tag, state: _Conversion) -> str:
        inner = self._children(element, state).strip()
        return f"\n\n{inner}\n\n" if inner else ""

    def _heading(self, element: Tag, state: _Conversion) -> str:
        text = " ".join(self._children(element, state).split())
        if not text:
            return ""
        return f"\n\n{'#' * int(element.name[1])} {text}\n\n"

    def _wrap(self, element: Tag, state: _Conversion, marker: str) -> str:
        inner = self._children(element, state)
        stripped = inner.strip()
        if not stripped:
            return inner
        lead = inner[: len(inner) - len(inner.lstrip())]
        trail = inner[len(inner.rstrip()) :]
        return f"{lead}{marker}{stripped}{marker}{trail}"

    def _anchor(self, element: Tag, state: _Conversion) -> str:
        text = self._children(element, state)
        href = (element.get("href") or "").strip()
        if not href or href.lower().startswith("javascript:"):
            return text
        label = " ".join(text.split())
        if not label:
            return ""
        return f"[{label}]({state.resolve(href)})"

    def _image(self, element: Tag, state: _Conversion) -> str:
        src = (element.get("src") or "").strip()
        if not src:
            return ""
        alt = " ".join((element.get("alt") or "").split())
        return f"![{alt}]({state.resolve(src)})"

    def _list(self, element: Tag, state: _Conversion) -> str:
        depth = state.list_depth
        state.list_depth += 1
        try:
            items = [self._list_item(li, state, depth) for li in element.find_all("li", recursive=False)]
        finally:
            state.list_depth -= 1
        body = "\n".join(item for item in items if item)
        if not body:
            return ""
        return f"\n\n{body}\n\n" if depth == 0 else f"\n{body}\n"

    def _list_item(self, element: Tag, state: _Conversion, depth: int) -> str:
        indent = "  " * depth
        lines = [line for line in self._children(element, state).split("\n") if line.strip()]
        if not lines:
            return ""
        out = [f"{indent}- {lines[0].strip()}"]
        for line in lines[1:]:
            if _NESTED_ITEM_RE.match(line):
                out.append(line.rstrip())
            else:
                out.append(f"{indent}  {line.strip()}")
        return "\n".join(out)

    def _orphan_item(self, element: Tag, state: _Conversion) -> str:
        item = self._list_item(element, state, state.list_depth)
        return f"\n{item}\n" if item else ""

    def _blockquote(self, element: Tag, state: _Conversion) -> str:
        inner = state.restore(normalize_whitespace(self._children(element, state)))
        if not inner:
            return ""
        quoted = "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
        return f"\n\n{quoted}\n\n"

    @staticmethod
    def _code_language(element: Tag) -> str:
        candidates = [element]
        code = element.find("code")
        if isinstance(code, Tag):
            candidates.append(code)
        for candidate in candidates:
            for cls in candidate.get("class") or []:
                match = _LANGUAGE_RE.match(cls)
                if match:
                    return match.group(1)
        return ""

    def _pre(self, element: Tag, state: _Conversion) -> str:
        code = element.get_text().strip("\n")
        if not code.strip():
            return ""
        fence = f"```{self._code_language(element)}\n{code}\n```"
        return f"\n\n{state.protect(fence)}\n\n"

    def _code(self, element: Tag, state: _Conversion) -> str:
        text = re.sub(r"\s*\n\s*", " ", element.get_text())
        if not text.strip():
            return ""
        if "`" in text:
            return f"`` {text} ``"
        return f"`{text}`"

    def _row(self, element: Tag, state: _Conversion) -> str:
        inner = self._children(element, state).strip()
        return f"\n{inner}\n" if inner else ""

    def _cell(self, element: Tag, state: _Conversion) -> str:
        inner = self._children(element, state).strip()
        return f"{inner} " if inner else ""

    def convert_element(self, element: Union[Tag, BeautifulSoup], url: str = "") -> str:
        """
        Convert the contents of a parsed element to Markdown.

        Args:
            element: Parsed element; its children are converted
            url: Base URL for resolving relative links (optional)

        Returns:
            Markdown string, whitespace-normalized
        """
        state = _Conversion(url)
        try:
            markdown = normalize_whitespace(self._children(element, state))
        except RecursionError:
            logger.error("HTML nested too deeply to convert, falling back to plain text")
            return normalize_whitespace(element.get_text("\n"))
        return state.restore(markdown)

    def convert(self, html: str, url: str = "") -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: HTML content string
            url: Source URL for resolving relative links (optional)

        Returns:
            Markdown string
        """
        if not html.strip():
            return ""
        return self.convert_element(BeautifulSoup(html, "html.parser"), url)
