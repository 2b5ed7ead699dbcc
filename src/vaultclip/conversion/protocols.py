"""Protocol definitions for the extraction pipeline stages."""

from typing import TYPE_CHECKING, Protocol, Union

from bs4 import BeautifulSoup, Tag

if TYPE_CHECKING:
    from .metadata import PageMetadata


class ContentSelector(Protocol):
    """
    Protocol for picking and cleaning the article body of a page.

    Works on an already-normalized tree so the page is parsed only once
    per clip. Must never come back empty handed: the fallback is the
    document body.
    """

    def extract_element(self, soup: BeautifulSoup, url: str = "") -> Tag:
        """
        Select the main content and return a cleaned copy of it.

        Args:
            soup: Normalized document
            url: Page URL, for resolving relative links

        Returns:
            Cleaned content element (the source tree is left untouched)
        """
        ...


class MarkdownConverter(Protocol):
    """Protocol for turning a content fragment into Markdown."""

    def convert(self, html: str, url: str = "") -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: HTML fragment
            url: Page URL, for resolving relative links

        Returns:
            Whitespace-normalized Markdown (empty for empty input)
        """
        ...


class MetadataSource(Protocol):
    """Protocol for reading page-level fields from the original document."""

    def extract(self, html: Union[str, BeautifulSoup], url: str) -> "PageMetadata":
        ...
