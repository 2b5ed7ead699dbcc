"""Content conversion for vaultclip (normalize, select, HTML to Markdown, metadata)."""

from .extractor import MainContentExtractor
from .markdown import HtmlToMarkdown, decode_entities, normalize_whitespace
from .metadata import MetadataExtractor, PageMetadata
from .normalizer import HtmlNormalizer, normalize_html
from .protocols import ContentSelector, MarkdownConverter, MetadataSource

__all__ = [
    # Protocols
    "ContentSelector",
    "MarkdownConverter",
    "MetadataSource",
    # Implementations
    "HtmlNormalizer",
    "MainContentExtractor",
    "HtmlToMarkdown",
    "MetadataExtractor",
    "PageMetadata",
    # Helpers
    "decode_entities",
    "normalize_html",
    "normalize_whitespace",
]
