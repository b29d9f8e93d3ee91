"""HTTP transport used for schema downloads, update posts and collection administration.

Every call is a single attempt: failures surface as ``httpx.HTTPError`` (or
``OSError`` for local file writes) and the caller decides how to report them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType

import httpx
from opentelemetry.trace import SpanKind

from index_feeder.config import Settings, get_settings
from index_feeder.observability.tracing import create_span


logger = logging.getLogger(__name__)

XML_CONTENT_TYPE = "application/xml; charset=utf-8"


class HttpTransport:
    """Thin synchronous wrapper around ``httpx.Client``.

    Args:
        settings: Source of the request timeout (defaults to process settings)
        client: Pre-built client to use instead of creating one; a supplied
            client is not closed by ``close()``
    """

    def __init__(self, settings: Settings | None = None, client: httpx.Client | None = None) -> None:
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(float(self.settings.http_timeout), connect=min(10.0, self.settings.http_timeout)),
            follow_redirects=True,
        )

    @property
    def client(self) -> httpx.Client:
        return self._client

    def get(self, url: str, *, check_status: bool = True) -> bytes:
        """Return the body of a GET request.

        With ``check_status=False`` error replies are returned as-is so callers
        can read the error envelope the server put in the body.
        """
        with create_span("transport.get", kind=SpanKind.CLIENT, attributes={"http.url": url}) as span:
            response = self._client.get(url)
            span.set_attribute("http.status_code", response.status_code)
            if check_status:
                response.raise_for_status()
            return response.content

    def download(self, url: str, path: str | Path) -> int:
        """Stream the body of a GET request into a file and return the byte count.

        The body lands in a ``.tmp`` sibling that replaces ``path`` only once
        the whole body has arrived, so a failed download leaves any previous
        file untouched and no partial file behind.
        """
        path = Path(path)
        tmp_path = path.with_name(path.name + ".tmp")
        written = 0
        with create_span("transport.download", kind=SpanKind.CLIENT, attributes={"http.url": url}) as span:
            with self._client.stream("GET", url) as response:
                span.set_attribute("http.status_code", response.status_code)
                response.raise_for_status()
                try:
                    with tmp_path.open("wb") as output:
                        for chunk in response.iter_bytes():
                            output.write(chunk)
                            written += len(chunk)
                    tmp_path.replace(path)
                except BaseException:
                    tmp_path.unlink(missing_ok=True)
                    raise
        logger.debug("Downloaded %d bytes from %s", written, url)
        return written

    def post_xml(self, url: str, body: str | bytes) -> bytes:
        """POST an XML body and return the reply body."""
        content = body.encode("utf-8") if isinstance(body, str) else body
        with create_span(
            "transport.post",
            kind=SpanKind.CLIENT,
            attributes={"http.url": url, "http.request.body.size": len(content)},
        ) as span:
            response = self._client.post(url, content=content, headers={"Content-Type": XML_CONTENT_TYPE})
            span.set_attribute("http.status_code", response.status_code)
            response.raise_for_status()
            return response.content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
