from abc import ABC, abstractmethod
from typing import Mapping


class ScraperError(Exception):
    """Custom exception for scraper-related errors."""

    pass


class TransportError(ScraperError):
    """Exception raised when a single transport cannot complete a request."""

    pass


class FetchError(ScraperError):
    """Exception raised when every transport failed for a request."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class ConfigurationError(ScraperError):
    """Exception raised for invalid scrape parameters, before any request is made."""

    pass


class Transport(ABC):
    """Abstract base class for the ways a page can be retrieved."""

    name: str = "unknown"

    @abstractmethod
    async def get(self, url: str) -> str:
        """Fetch ``url`` and return the response body.

        Raises:
            TransportError: If the request could not be completed.
        """
        pass

    @abstractmethod
    async def post(self, url: str, fields: Mapping[str, str]) -> str:
        """Submit ``fields`` as an urlencoded form to ``url`` and return the body.

        Raises:
            TransportError: If the request could not be completed.
        """
        pass

    async def close(self) -> None:
        """Releases any resources held by the transport."""
        return None
