"""requests-based page fetcher."""

import logging
import re
from typing import Optional

import requests

from ..conversion.normalizer import HtmlNormalizer
from ..exceptions import FetchError
from ..models.config import FetchConfig
from .protocols import FetchedPage

logger = logging.getLogger(__name__)

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

_HEADER_CHARSET_RE = re.compile(r"charset=[\"']?([^\"';\s]+)", re.IGNORECASE)


class RequestsPageFetcher:
    """
    Fetches pages with a ``requests`` session.

    Features:
    - Browser User-Agent (mobile Safari by default)
    - Redirects followed; the final URL is reported
    - Body size limit enforced while streaming
    - Charset from the Content-Type header, then ``<meta charset>``, then UTF-8

    Example:
        with RequestsPageFetcher(FetchConfig(timeout=15)) as fetcher:
            page = fetcher.fetch("https://example.com/post")
            variables = clipper.extract_content(page.html, page.url)
    """

    def __init__(self, config: Optional[FetchConfig] = None, session: Optional[requests.Session] = None):
        """
        Initialize the fetcher.

        Args:
            config: Fetch settings (User-Agent, timeout, size limit)
            session: Session to use (a new one is created when omitted)
        """
        self.config = config or FetchConfig()
        self._session = session or requests.Session()
        self._owns_session = session is None

    def __enter__(self) -> "RequestsPageFetcher":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _read_body(self, response: requests.Response, url: str) -> bytes:
        limit = self.config.max_html_bytes or None

        declared = response.headers.get("Content-Length")
        if limit and declared:
            try:
                if int(declared) > limit:
                    raise FetchError(f"Page too large ({declared} bytes > {limit}): {url}", response.status_code)
            except ValueError:
                logger.debug(f"Ignoring invalid Content-Length {declared!r} for {url}")

        buf = bytearray()
        for chunk in response.iter_content(chunk_size=128 * 1024):
            if not chunk:
                continue
            buf.extend(chunk)
            if limit and len(buf) > limit:
                raise FetchError(f"Page too large (>{limit} bytes): {url}", response.status_code)
        return bytes(buf)

    @staticmethod
    def decode(body: bytes, content_type: str) -> str:
        """Decode a body using the header charset, then the page's own declaration."""
        match = _HEADER_CHARSET_RE.search(content_type or "")
        if match:
            try:
                return body.decode(match.group(1), errors="replace")
            except LookupError:
                logger.debug(f"Unknown charset in Content-Type: {match.group(1)}")
        return HtmlNormalizer().decode(body)

    def fetch(self, url: str) -> FetchedPage:
        logger.info(f"Fetching {url}")
        headers = {"User-Agent": self.config.user_agent, "Accept": ACCEPT_HTML}
        try:
            response = self._session.get(
                url,
                headers=headers,
                timeout=self.config.timeout,
                allow_redirects=True,
                stream=True,
            )
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Could not fetch {url}: {e}") from e

        try:
            if not 200 <= response.status_code < 300:
                raise FetchError(f"HTTP {response.status_code} for {url}", response.status_code)
            try:
                body = self._read_body(response, url)
            except requests.exceptions.RequestException as e:
                raise FetchError(f"Could not read {url}: {e}", response.status_code) from e
        finally:
            response.close()

        content_type = response.headers.get("Content-Type", "")
        final_url = response.url or url
        if final_url != url:
            logger.debug(f"Redirected {url} -> {final_url}")

        return FetchedPage(
            html=self.decode(body, content_type),
            url=final_url,
            status_code=response.status_code,
            content_type=content_type,
        )
