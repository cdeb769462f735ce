"""Registry access: transport, spec fetching and archive download."""

from gemfetch.registry.archive import ArchiveFetcher
from gemfetch.registry.dependency_api import PayloadError, SpecFormatError
from gemfetch.registry.fetcher import Fetcher
from gemfetch.registry.transport import HttpTransport, SSLVerificationError, TransportError

__all__ = [
    "ArchiveFetcher",
    "Fetcher",
    "HttpTransport",
    "PayloadError",
    "SSLVerificationError",
    "SpecFormatError",
    "TransportError",
]
