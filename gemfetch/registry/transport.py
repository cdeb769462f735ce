"""HTTP transport for registry requests."""

from __future__ import annotations

import logging
import threading
from urllib.parse import urljoin

import requests

from gemfetch.registry.common import copy_credentials, mask_credentials

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Network-level failure talking to a registry.

    Every lower-level error from the HTTP stack is normalized to this type,
    so callers never need to handle ``requests`` exceptions.
    """

    def __init__(self, message: str, uri: str | None = None, status_code: int | None = None):
        self.uri = uri
        self.status_code = status_code
        super().__init__(message)


class SSLVerificationError(Exception):
    """The registry's SSL certificate could not be verified."""

    def __init__(self, message: str, uri: str | None = None):
        self.uri = uri
        super().__init__(message)


class HttpTransport:
    """Persistent HTTP connection with bounded redirect following.

    One ``requests.Session`` is reused for every request, so connections
    stay open between calls (pooled per host). Requests are serialized so
    a shared instance can be used from several threads.
    """

    # how long to wait for each registry response, in seconds
    API_TIMEOUT = 10
    REDIRECT_LIMIT = 5

    def __init__(
        self,
        read_timeout: float | None = None,
        redirect_limit: int | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize the transport.

        Args:
            read_timeout: Seconds to wait for a response (default: 10)
            redirect_limit: Redirects followed before failing (default: 5)
            session: Session to send requests through (default: a new one)
        """
        self._read_timeout = read_timeout or self.API_TIMEOUT
        self._redirect_limit = self.REDIRECT_LIMIT if redirect_limit is None else redirect_limit
        self._session = session or requests.Session()
        self._lock = threading.Lock()

    @property
    def read_timeout(self) -> float:
        return self._read_timeout

    @property
    def redirect_limit(self) -> int:
        return self._redirect_limit

    def _get(self, uri: str) -> requests.Response:
        """Send one GET without following redirects."""
        logger.debug("Fetching from: %s", mask_credentials(uri))
        try:
            with self._lock:
                return self._session.get(uri, timeout=self._read_timeout, allow_redirects=False)
        except requests.exceptions.SSLError as e:
            raise SSLVerificationError(
                f"Could not verify the SSL certificate for {mask_credentials(uri)}",
                uri=uri,
            ) from e
        except requests.RequestException as e:
            logger.debug("Network error for %s: %s", mask_credentials(uri), e)
            raise TransportError(
                f"Network error while fetching {mask_credentials(uri)}",
                uri=uri,
            ) from e

    def request(self, uri: str) -> bytes:
        """Fetch a URI and return the response body.

        Redirects are followed up to the redirect limit. The original URI's
        user and password are copied onto every redirect target.

        Args:
            uri: URI to fetch

        Returns:
            Response body as bytes

        Raises:
            TransportError: On network failure, too many redirects, or a
                response that is neither a success nor a redirect
            SSLVerificationError: If the server certificate is rejected
        """
        redirects = 0

        while True:
            response = self._get(uri)
            status = response.status_code

            if 300 <= status < 400:
                logger.debug("HTTP Redirection (%d)", status)
                redirects += 1
                if redirects > self._redirect_limit:
                    raise TransportError("Too many redirects", uri=uri, status_code=status)

                location = response.headers.get("Location")
                if not location:
                    raise TransportError(
                        f"Redirect without a location from {mask_credentials(uri)}",
                        uri=uri,
                        status_code=status,
                    )
                uri = copy_credentials(urljoin(uri, location), uri)
                continue

            if 200 <= status < 300:
                logger.debug("HTTP Success, received %d bytes", len(response.content))
                return response.content

            logger.debug("HTTP Error (%d)", status)
            raise TransportError(
                f"Don't know how to process {status} {response.reason or ''}".rstrip(),
                uri=uri,
                status_code=status,
            )

    def close(self) -> None:
        """Close the underlying connections."""
        self._session.close()


_default_transport: HttpTransport | None = None
_default_lock = threading.Lock()


def get_default_transport() -> HttpTransport:
    """Get the process-wide transport, creating it on first use."""
    global _default_transport
    with _default_lock:
        if _default_transport is None:
            _default_transport = HttpTransport()
        return _default_transport
