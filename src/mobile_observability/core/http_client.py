"""Shared HTTP client with retry logic and rate limiting."""

import time
from typing import Optional, Dict, Any
import requests

USER_AGENT = "mobile-observability-link-checker/0.3"


class RetryableHTTPClient:
    """HTTP client with exponential backoff retry logic and rate limiting.

    Handles common failure scenarios (429, 500, 502, 503, 504) with exponential
    backoff, respects Retry-After headers, and enforces rate limiting.

    Args:
        rps: Maximum requests per second (default: 1.0)
        max_retries: Maximum number of retry attempts (default: 3)
        timeout: Request timeout in seconds (default: 15)
    """

    def __init__(self, rps: float = 1.0, max_retries: int = 3, timeout: int = 15):
        self.session = requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.rps = rps
        self.max_retries = max(1, int(max_retries))
        self.timeout = timeout
        self.min_interval = 1.0 / max(rps, 0.01)
        self.last_request_time = 0.0

    def _rate_limit(self):
        """Enforce rate limiting between requests."""
        now = time.time()
        elapsed = now - self.last_request_time
        if elapsed < self.min_interval:
            time.sleep(self.min_interval - elapsed)
        self.last_request_time = time.time()

    def request_with_retry(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[int] = None,
        allow_redirects: bool = True,
    ) -> requests.Response:
        """Make a request with exponential backoff retry logic.

        The last response is returned even when it is a retryable error status
        so callers can report it.

        Raises:
            requests.RequestException: On network errors after retries exhausted
        """
        timeout = timeout or self.timeout
        response = None

        for attempt in range(self.max_retries):
            try:
                self._rate_limit()
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    timeout=timeout,
                    allow_redirects=allow_redirects,
                )

                # Retry on throttling/server errors with exponential backoff
                if response.status_code in (429, 500, 502, 503, 504) and attempt < self.max_retries - 1:
                    time.sleep(self._calculate_backoff_time(response, attempt))
                    continue
                return response

            except requests.RequestException:
                if attempt < self.max_retries - 1:
                    time.sleep(min(8.0, 2.0 ** attempt))
                    continue
                raise

        return response

    def get_with_retry(self, url: str, **kwargs) -> requests.Response:
        return self.request_with_retry("GET", url, **kwargs)

    def head_with_retry(self, url: str, **kwargs) -> requests.Response:
        return self.request_with_retry("HEAD", url, **kwargs)

    def _calculate_backoff_time(self, response: requests.Response, attempt: int) -> float:
        """Calculate backoff time, respecting Retry-After header if present."""
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                wait = float(retry_after)
                return max(wait, 1.0)  # At least 1 second
            except (ValueError, TypeError):
                pass
        # Exponential backoff: 1s, 2s, 4s, max 8s
        return min(8.0, 2.0 ** attempt)

    def close(self):
        """Close the underlying session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
