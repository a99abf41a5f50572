"""
Custom exceptions for the page scraper.

Error severity:
  - FetchError      -> FAIL HARD: the page could not be retrieved; wrapped into ScrapeError.
  - ScrapeError     -> FAIL HARD: the single failure a caller of WebScraper ever sees.
  - AnalysisError   -> RECOVERED: the external AI analyzer failed; the pipeline
                       falls back to the heuristic analyzer.
  - LLMClientError  -> raised by provider clients, wrapped into AnalysisError upstream.
"""

from typing import Optional


class ScraperError(Exception):
    """Base exception for all page scraper errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- FAIL HARD ---

class FetchError(ScraperError):
    """Raised by a fetcher on network errors, timeouts and non-2xx responses."""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class ScrapeError(ScraperError):
    """
    Raised by the pipeline when a scrape cannot complete.

    A scrape either succeeds or fails once with this error; a partially built
    result is never returned.
    """

    def __init__(self, message: str, url: str, details: Optional[dict] = None):
        super().__init__(message, details)
        self.url = url

    def to_response(self) -> dict:
        """Convert to an error payload for callers that speak JSON."""
        return {
            "error": "ScrapeError",
            "message": self.message,
            "url": self.url,
            "details": self.details
        }


# --- RECOVERED: heuristic fallback takes over ---

class AnalysisError(ScraperError):
    """
    Raised when the external AI analyzer cannot produce an enrichment.

    The pipeline catches this and uses the heuristic analyzer instead.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.provider = provider


# --- LLM-specific: bubbles up as AnalysisError ---

class LLMClientError(ScraperError):
    """Raised when an LLM API call fails."""

    def __init__(
        self,
        message: str,
        provider: str,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.provider = provider  # "openai" or "anthropic"
