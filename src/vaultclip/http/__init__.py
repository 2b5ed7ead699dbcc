"""Page fetching for vaultclip."""

from .client import RequestsPageFetcher
from .protocols import FetchedPage, PageFetcher

__all__ = ["FetchedPage", "PageFetcher", "RequestsPageFetcher"]
