"""Protocol definitions for page fetching."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class FetchedPage:
    """
    A fetched page, decoded to text.

    Attributes:
        html: Decoded response body
        url: Final URL after any redirects
        status_code: HTTP status code
        content_type: Content-Type header value
    """

    html: str
    url: str
    status_code: int = 200
    content_type: str = ""


class PageFetcher(Protocol):
    """
    Protocol for fetching a page's HTML.

    Lets the CLI (or any host) swap the network layer, and lets tests
    supply canned pages.
    """

    def fetch(self, url: str) -> FetchedPage:
        """
        Fetch a page.

        Args:
            url: The URL to fetch

        Returns:
            The decoded page and its final URL

        Raises:
            FetchError: On network errors, non-2xx responses or oversized bodies
        """
        ...
