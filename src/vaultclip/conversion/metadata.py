"""Page metadata extraction from <meta>, <title> and <link> tags."""

import logging
from typing import Optional, TypedDict, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..models.clip import domain_of

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"

# Meta keys tried in order for each field; the first non-empty value wins
TITLE_KEYS = ("og:title", "twitter:title")
DESCRIPTION_KEYS = ("description", "og:description", "twitter:description")
AUTHOR_KEYS = ("author", "article:author", "og:article:author")
PUBLISHED_KEYS = ("article:published_time", "og:article:published_time", "datePublished", "date")
IMAGE_KEYS = ("og:image", "twitter:image", "twitter:image:src")
SITE_KEYS = ("og:site_name", "application-name")


class PageMetadata(TypedDict):
    """Page-level fields exposed to templates."""

    title: str
    description: str
    author: str
    published: str
    image: str
    site: str
    favicon: str
    domain: str
    meta: dict[str, str]


class MetadataExtractor:
    """
    Extract page metadata with a priority-ordered key list per field.

    Runs over the original document, not the content-selected fragment,
    since most of the interesting tags live in ``<head>``.

    Example:
        metadata = MetadataExtractor().extract(html, "https://example.com/post")
        metadata["title"]  # "<title> text, og:title, twitter:title or Untitled"
    """

    def extract(self, html: Union[str, BeautifulSoup], url: str) -> PageMetadata:
        """Extract metadata fields.

        Args:
            html: Original HTML document, or an already-parsed tree of it
            url: Page URL, used to resolve image and favicon links

        Returns:
            Metadata mapping with every field present (empty when unknown)
        """
        soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
        meta = self.collect_meta(soup)
        lookup: dict[str, str] = {}
        for key, value in meta.items():
            lookup.setdefault(key.lower(), value)

        title = self._title_text(soup) or self._first(lookup, TITLE_KEYS) or DEFAULT_TITLE
        image = self._first(lookup, IMAGE_KEYS)

        return {
            "title": title,
            "description": self._first(lookup, DESCRIPTION_KEYS),
            "author": self._first(lookup, AUTHOR_KEYS),
            "published": self._first(lookup, PUBLISHED_KEYS),
            "image": self._resolve(image, url),
            "site": self._first(lookup, SITE_KEYS),
            "favicon": self._resolve(self._favicon(soup), url),
            "domain": domain_of(url),
            "meta": meta,
        }

    @staticmethod
    def collect_meta(soup: BeautifulSoup) -> dict[str, str]:
        """Collect every ``<meta>`` name/property/itemprop to content pair.

        The first occurrence of a key wins.
        """
        meta: dict[str, str] = {}
        for tag in soup.find_all("meta"):
            key = tag.get("name") or tag.get("property") or tag.get("itemprop")
            content = tag.get("content")
            if not key or content is None:
                continue
            meta.setdefault(key.strip(), content.strip())
        return meta

    @staticmethod
    def _title_text(soup: BeautifulSoup) -> str:
        tag = soup.find("title")
        if not isinstance(tag, Tag):
            return ""
        return " ".join(tag.get_text().split())

    @staticmethod
    def _first(lookup: dict[str, str], keys: tuple[str, ...]) -> str:
        for key in keys:
            value = lookup.get(key.lower(), "")
            if value:
                return value
        return ""

    @staticmethod
    def _favicon(soup: BeautifulSoup) -> str:
        for link in soup.find_all("link", href=True):
            rel = link.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if any("icon" in r.lower() for r in rel):
                return link["href"].strip()
        return ""

    @staticmethod
    def _resolve(value: str, url: str) -> str:
        if not value or not url:
            return value
        return urljoin(url, value)


def extract_metadata(html: str, url: str, extractor: Optional[MetadataExtractor] = None) -> PageMetadata:
    """Extract metadata with a default extractor."""
    return (extractor or MetadataExtractor()).extract(html, url)
