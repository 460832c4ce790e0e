"""Download of the generated image.

The AI service returns a short-lived URL rather than image bytes.  This
module fetches it once, streaming the body so large images never need to
arrive in a single read.  Redirects are not followed and any status other
than ``200 OK`` is a failure.  Nothing is retried.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from coloringpage.core.results import ImageFetchError

logger = logging.getLogger(__name__)


async def fetch_image(
    url: str,
    *,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bytes:
    """Download the full body at *url*.

    Args:
        url: Absolute ``http`` or ``https`` URL.
        timeout: Transport timeout in seconds (connect, read, write, pool).
        transport: Optional httpx transport, used by tests to serve canned
            responses.

    Returns:
        The concatenated response body.

    Raises:
        ImageFetchError: If the URL scheme is unsupported, the server
            answers with a non-200 status, or the transfer fails.
    """
    scheme = urlsplit(url).scheme.lower()
    if scheme not in ("http", "https"):
        raise ImageFetchError(f"Unsupported image URL scheme: {scheme or '(none)'}")

    chunks: list[bytes] = []

    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=False,
            transport=transport,
        ) as client:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise ImageFetchError(f"Failed to download image: {response.status_code}")

                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
    except httpx.HTTPError as e:
        raise ImageFetchError(f"Failed to download image: {e}") from e

    body = b"".join(chunks)
    logger.info("Downloaded generated image (%d bytes in %d chunk(s)).", len(body), len(chunks))
    return body
