"""Main content extraction from HTML pages."""

import copy
import logging
import re
from typing import Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..models.config import ExtractionConfig
from .normalizer import HtmlNormalizer

logger = logging.getLogger(__name__)

# Tried in order; the first element with any text wins
CONTENT_SELECTORS = [
    # Platform-specific post bodies
    ".post-content",
    ".article-content",
    ".entry-content",
    ".post-body",
    ".article-body",
    '[itemprop="articleBody"]',
    ".story-body",
    ".markdown-body",
    # Semantic containers
    "article",
    "main",
    '[role="main"]',
    # Generic containers
    "#content",
    ".content",
    "#main-content",
    ".main-content",
]

# Subtrees removed from whatever was selected
REMOVE_SELECTORS = [
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="contentinfo"]',
    '[role="complementary"]',
    '[aria-hidden="true"]',
    # Ads
    ".ad",
    ".ads",
    ".advert",
    ".advertisement",
    ".sponsored",
    # Share buttons
    ".share",
    ".shares",
    ".share-buttons",
    ".social-share",
    ".sharing",
    # Related posts
    ".related",
    ".related-posts",
    ".related-articles",
    # Newsletter prompts
    ".newsletter",
    ".subscribe",
    ".signup",
    # Author bio boxes
    ".author-bio",
    ".author-box",
    ".about-author",
    # Breadcrumbs
    ".breadcrumb",
    ".breadcrumbs",
    # Tag lists
    ".tags",
    ".tag-list",
    ".post-tags",
    # Sidebars and widgets
    ".sidebar",
    ".widget",
    ".widgets",
    # Comments
    ".comments",
    "#comments",
]

CANDIDATE_TAGS = ["div", "section", "article", "main", "td"]
LINK_BLOCK_TAGS = ["div", "section", "ul", "ol", "p", "table", "dl"]
BOILERPLATE_TAGS = ["p", "div", "span", "small", "section", "li"]

KEEP_ATTRS = {"href", "src", "alt", "title", "class", "id"}

_NAV_TOKEN_RE = re.compile(r"(?:^|[\s_-])(?:nav|navbar|navigation|menu|breadcrumbs?)(?:$|[\s_-])", re.IGNORECASE)

_BOILERPLATE_RE = re.compile(
    r"©|\bcopyright\b|all rights reserved|\bcookie (?:preferences|settings|policy|consent)\b|\bwe use cookies\b",
    re.IGNORECASE,
)


def visible_text(element: Tag) -> str:
    """Element text with whitespace runs collapsed."""
    return " ".join(element.get_text(" ").split())


def _is_nav_like(tag: Tag) -> bool:
    if tag.name == "nav" or tag.get("role") == "navigation":
        return True
    classes = tag.get("class") or []
    markers = " ".join(classes) + " " + (tag.get("id") or "")
    return bool(_NAV_TOKEN_RE.search(markers))


class MainContentExtractor:
    """
    Extracts main content from HTML documents.

    Selection runs an ordered selector list first and falls back to a
    scored heuristic; the chosen subtree is then stripped of navigation,
    link lists, ads and boilerplate notices. It never comes back empty
    handed: the worst case is the whole (cleaned) body.

    Example:
        extractor = MainContentExtractor()
        content = extractor.extract(html, "https://blog.example.com/post")
    """

    def __init__(
        self,
        content_selectors: Optional[list[str]] = None,
        remove_selectors: Optional[list[str]] = None,
        min_content_score: int = 200,
        nav_penalty: int = 50,
        link_density_threshold: float = 0.8,
        link_block_max_text: int = 300,
        boilerplate_max_text: int = 200,
        resolve_links: bool = True,
        normalizer: Optional[HtmlNormalizer] = None,
    ):
        """
        Initialize the content extractor.

        Args:
            content_selectors: CSS selectors for main content (overrides defaults)
            remove_selectors: CSS selectors for elements to remove (extends defaults)
            min_content_score: Score a heuristic candidate must exceed
            nav_penalty: Score deducted per navigation-like descendant
            link_density_threshold: Anchor-text share marking a block as a link list
            link_block_max_text: Text length at which link-heavy blocks are kept anyway
            boilerplate_max_text: Text length below which notices are dropped
            resolve_links: Whether to make href/src attributes absolute
            normalizer: HTML normalizer used by :meth:`extract`
        """
        self._content_selectors = content_selectors or CONTENT_SELECTORS
        self._remove_selectors = list(REMOVE_SELECTORS)
        if remove_selectors:
            self._remove_selectors.extend(remove_selectors)
        self._min_content_score = min_content_score
        self._nav_penalty = nav_penalty
        self._link_density_threshold = link_density_threshold
        self._link_block_max_text = link_block_max_text
        self._boilerplate_max_text = boilerplate_max_text
        self._resolve = resolve_links
        self._normalizer = normalizer or HtmlNormalizer()

    @classmethod
    def from_config(cls, config: ExtractionConfig) -> "MainContentExtractor":
        return cls(
            content_selectors=config.content_selectors,
            remove_selectors=config.remove_selectors,
            min_content_score=config.min_content_score,
            nav_penalty=config.nav_penalty,
            link_density_threshold=config.link_density_threshold,
            link_block_max_text=config.link_block_max_text,
            boilerplate_max_text=config.boilerplate_max_text,
            resolve_links=config.resolve_links,
        )

    def _find_by_selectors(self, soup: BeautifulSoup) -> Optional[Tag]:
        """Return the first selector hit that has any text."""
        for selector in self._content_selectors:
            for element in soup.select(selector):
                if element.get_text(strip=True):
                    logger.debug(f"Main content matched selector {selector!r}")
                    return element
        return None

    def _find_by_score(self, soup: BeautifulSoup) -> Optional[Tag]:
        """
        Pick the block container with the most paragraph text.

        Scores are accumulated bottom-up: each outermost paragraph or
        blockquote adds its text length to every ancestor, and each
        navigation-like element subtracts a penalty from every ancestor.
        """
        text_scores: dict[int, int] = {}
        nav_counts: dict[int, int] = {}

        for block in soup.find_all(["p", "blockquote"]):
            if block.find_parent(["p", "blockquote"]) is not None:
                continue
            length = len(visible_text(block))
            if not length:
                continue
            for parent in block.parents:
                text_scores[id(parent)] = text_scores.get(id(parent), 0) + length

        for nav in soup.find_all(_is_nav_like):
            for parent in nav.parents:
                nav_counts[id(parent)] = nav_counts.get(id(parent), 0) + 1

        best: Optional[Tag] = None
        best_score = self._min_content_score
        for candidate in soup.find_all(CANDIDATE_TAGS):
            key = id(candidate)
            score = text_scores.get(key, 0) - self._nav_penalty * nav_counts.get(key, 0)
            # Later (deeper) candidates win ties against their wrappers
            if score > self._min_content_score and score >= best_score:
                best, best_score = candidate, score

        if best is not None:
            logger.debug(f"Heuristic picked <{best.name}> with score {best_score}")
        return best

    def select(self, soup: BeautifulSoup) -> Tag:
        """Locate the main content element. Never returns ``None``."""
        element = self._find_by_selectors(soup)
        if element is None:
            element = self._find_by_score(soup)
        if element is None:
            body = soup.find("body")
            if isinstance(body, Tag):
                logger.debug("No content container found, using <body>")
                return body
            logger.debug("No <body> found, using the whole document")
            return soup
        return element

    def _remove_unwanted(self, element: Tag) -> None:
        """Remove navigation, ads, and other unwanted elements."""
        for selector in self._remove_selectors:
            for el in element.select(selector):
                if not el.decomposed:
                    el.decompose()

    def _is_link_dominated(self, block: Tag) -> bool:
        links = block.find_all("a")
        if len(links) <= 3:
            return False
        text_length = len(visible_text(block))
        if not text_length or text_length >= self._link_block_max_text:
            return False
        link_length = sum(len(visible_text(a)) for a in links)
        return link_length / text_length > self._link_density_threshold

    def _remove_link_lists(self, element: Tag) -> None:
        """Remove short blocks that are mostly anchors (menus, tag clouds)."""
        for block in element.find_all(LINK_BLOCK_TAGS):
            if not block.decomposed and self._is_link_dominated(block):
                block.decompose()

    def _remove_boilerplate(self, element: Tag) -> None:
        """Remove short copyright and cookie notices."""
        # Innermost first, so a wrapper is judged without the notice it held
        for el in reversed(element.find_all(BOILERPLATE_TAGS)):
            if el.decomposed:
                continue
            text = visible_text(el)
            if text and len(text) < self._boilerplate_max_text and _BOILERPLATE_RE.search(text):
                el.decompose()

    def _clean_attributes(self, element: Tag) -> None:
        """Remove unnecessary attributes from elements."""
        for tag in element.find_all(True):
            attrs_to_remove = [attr for attr in tag.attrs if attr not in KEEP_ATTRS]
            for attr in attrs_to_remove:
                del tag[attr]

            if tag.get("class") == []:
                del tag["class"]
            if tag.get("id") == "":
                del tag["id"]

    def _resolve_links(self, element: Tag, base_url: str) -> None:
        """Convert relative URLs to absolute URLs."""
        for tag in element.find_all("a", href=True):
            href = tag["href"]
            if href.startswith("#"):
                continue
            if not href.startswith(("http://", "https://", "//")):
                tag["href"] = urljoin(base_url, href)

        for tag in element.find_all(src=True):
            src = tag["src"]
            if not src.startswith(("http://", "https://", "//", "data:")):
                tag["src"] = urljoin(base_url, src)

    def clean(self, element: Tag, url: str = "") -> Tag:
        """Return a cleaned copy of ``element``; the source tree is untouched."""
        content = copy.copy(element)

        self._remove_unwanted(content)
        self._remove_link_lists(content)
        self._remove_boilerplate(content)
        self._clean_attributes(content)
        if self._resolve and url:
            self._resolve_links(content, url)

        return content

    def extract_element(self, soup: BeautifulSoup, url: str = "") -> Tag:
        """Select and clean the main content of an already-normalized tree."""
        return self.clean(self.select(soup), url)

    def extract(self, html: Union[str, bytes], url: str) -> str:
        """
        Extract main content from HTML.

        Args:
            html: Raw HTML (text or bytes)
            url: Source URL for resolving relative links

        Returns:
            Inner HTML of the cleaned content element

        Raises:
            ExtractionError: If the input is empty or not HTML
        """
        soup = self._normalizer.normalize(html)
        return self.extract_element(soup, url).decode_contents().strip()
