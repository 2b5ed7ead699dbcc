"""Assemble the ClipVariables bag from a page."""

import logging
from datetime import datetime
from typing import Iterable, Optional, Union

from .conversion.extractor import MainContentExtractor
from .conversion.markdown import HtmlToMarkdown
from .conversion.metadata import DEFAULT_TITLE, MetadataExtractor
from .conversion.normalizer import HtmlNormalizer
from .conversion.protocols import ContentSelector, MarkdownConverter, MetadataSource
from .exceptions import ExtractionError
from .models.clip import ClipVariables, Highlight, PreprocessedPage
from .models.config import ExtractionConfig

logger = logging.getLogger(__name__)


def clip_timestamp(now: Optional[datetime] = None) -> str:
    """Local ISO-8601 timestamp with offset, seconds precision."""
    return (now or datetime.now()).astimezone().isoformat(timespec="seconds")


class VariableBuilder:
    """
    Runs the extraction pipeline and assembles a :class:`ClipVariables`.

    The normalizer, selector and converter process the page body while the
    metadata extractor reads the original, unstripped document.

    Example:
        builder = VariableBuilder()
        variables = builder.build(html, "https://example.com/post")
        variables.title, variables.words
    """

    def __init__(
        self,
        extractor: Optional[ContentSelector] = None,
        converter: Optional[MarkdownConverter] = None,
        metadata: Optional[MetadataSource] = None,
        normalizer: Optional[HtmlNormalizer] = None,
    ):
        self._normalizer = normalizer or HtmlNormalizer()
        self._extractor = extractor or MainContentExtractor(normalizer=self._normalizer)
        self._converter = converter or HtmlToMarkdown()
        self._metadata = metadata or MetadataExtractor()

    @classmethod
    def from_config(cls, config: ExtractionConfig) -> "VariableBuilder":
        return cls(extractor=MainContentExtractor.from_config(config))

    def build(
        self,
        html: Union[str, bytes],
        url: str,
        *,
        selection_html: str = "",
        highlights: Iterable[Highlight] = (),
        include_full_html: bool = False,
        now: Optional[datetime] = None,
    ) -> ClipVariables:
        """
        Extract a page into a variable bag.

        Args:
            html: Raw page HTML
            url: Final page URL
            selection_html: HTML of the user's text selection, if any
            highlights: User highlights, in order
            include_full_html: Expose the original document as ``fullHtml``
            now: Clip time (defaults to the current local time)

        Returns:
            The populated variable bag

        Raises:
            ExtractionError: If the input is not HTML, or yields neither
                content nor a title
        """
        text = self._normalizer.decode(html)
        metadata = self._metadata.extract(self._normalizer.parse(text), url)

        soup = self._normalizer.normalize(text)
        content_html = self._extractor.extract_element(soup, url).decode_contents().strip()
        content = self._converter.convert(content_html, url)

        if not content and metadata["title"] == DEFAULT_TITLE:
            raise ExtractionError(f"No content or title could be extracted from {url or 'page'}")

        selection = self._converter.convert(selection_html, url) if selection_html else ""
        logger.debug(f"Extracted {len(content)} chars of Markdown from {url}")

        return ClipVariables.from_content(
            title=metadata["title"],
            url=url,
            content=content,
            content_html=content_html,
            timestamp=clip_timestamp(now),
            selection=selection,
            selection_html=selection_html,
            author=metadata["author"],
            description=metadata["description"],
            favicon=metadata["favicon"],
            image=metadata["image"],
            site=metadata["site"],
            published=metadata["published"],
            full_html=text if include_full_html else "",
            highlights=tuple(highlights),
            meta=metadata["meta"],
        )

    def build_from_page(
        self,
        page: PreprocessedPage,
        *,
        highlights: Iterable[Highlight] = (),
        include_full_html: bool = False,
        now: Optional[datetime] = None,
    ) -> ClipVariables:
        """Build from in-page preprocessing output, preferring its metadata."""
        variables = self.build(
            page.html or page.content_html,
            page.url,
            selection_html=page.selected_html,
            highlights=highlights,
            include_full_html=include_full_html,
            now=now,
        )
        return variables.with_overrides(page)
