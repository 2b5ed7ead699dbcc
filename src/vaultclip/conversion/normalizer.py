"""HTML normalization: parse once, drop dead weight before scoring."""

import codecs
import logging
import re
from typing import Union

from bs4 import BeautifulSoup, Comment

from ..exceptions import ExtractionError

logger = logging.getLogger(__name__)

# Elements that never hold readable content
STRIP_TAGS = ("script", "style", "noscript", "iframe", "svg")

_CHARSET_RE = re.compile(r'charset=["\']?([^"\'\s>;]+)', re.IGNORECASE)


class HtmlNormalizer:
    """
    Parses raw HTML into a BeautifulSoup tree and removes non-content nodes.

    The stdlib ``html.parser`` backend is used: it scans the input once,
    so malformed or unterminated markup cannot trigger quadratic
    backtracking, and an unclosed element simply runs to end-of-input.

    Example:
        soup = HtmlNormalizer().normalize("<body><script>x()</script><p>Hi</p></body>")
        soup.get_text()  # "Hi"
    """

    def __init__(self, strip_tags: tuple[str, ...] = STRIP_TAGS):
        self._strip_tags = list(strip_tags)

    @staticmethod
    def detect_encoding(html: bytes) -> str:
        """Detect character encoding from a ``<meta charset>`` declaration."""
        head = html[:4096].decode("latin-1", errors="ignore")
        match = _CHARSET_RE.search(head)
        if match:
            try:
                return codecs.lookup(match.group(1).strip()).name
            except LookupError:
                logger.debug(f"Unknown charset declared: {match.group(1)}")
        return "utf-8"

    def decode(self, html: Union[str, bytes]) -> str:
        """Return ``html`` as text, decoding bytes with the declared charset."""
        if isinstance(html, str):
            return html
        encoding = self.detect_encoding(html)
        try:
            return html.decode(encoding, errors="replace")
        except LookupError:
            return html.decode("utf-8", errors="replace")

    def parse(self, html: Union[str, bytes]) -> BeautifulSoup:
        """
        Parse HTML without removing anything.

        Raises:
            ExtractionError: If the input is empty or holds no elements
        """
        text = self.decode(html)
        if not text.strip():
            raise ExtractionError("Empty HTML input")

        soup = BeautifulSoup(text, "html.parser")
        if soup.find() is None:
            raise ExtractionError("Input does not contain any HTML elements")
        return soup

    def strip(self, soup: BeautifulSoup) -> BeautifulSoup:
        """Remove non-content elements and comments in place."""
        for tag in soup.find_all(self._strip_tags):
            # Nested matches die with their ancestor
            if not tag.decomposed:
                tag.decompose()

        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        return soup

    def normalize(self, html: Union[str, bytes]) -> BeautifulSoup:
        """Parse and strip in one step."""
        return self.strip(self.parse(html))


def normalize_html(html: Union[str, bytes]) -> str:
    """Return the normalized document as an HTML string."""
    return str(HtmlNormalizer().normalize(html))
