"""HTTP client abstraction.

The pipeline makes one kind of request: a small text file (the
build-date marker) from raw.githubusercontent.com. HttpClient is the
protocol stages depend on; tests pass in their own implementation.
"""

from __future__ import annotations

import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from llvmrel.core.result import Err, Ok, Result

__all__ = ["HttpClient", "HttpError", "RealHttpClient"]


@dataclass(frozen=True, slots=True)
class HttpError:
    """A failed request. ``status`` is 0 when no HTTP response arrived."""

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    def get_text(self, url: str) -> Result[str, HttpError]:
        """Fetch ``url`` and return the body decoded as UTF-8."""
        ...


class RealHttpClient:
    """urllib client using the system certificate store."""

    def __init__(self, timeout: float = 30.0, user_agent: str = "llvmrel") -> None:
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent,
            # raw.githubusercontent.com serves cached files for minutes.
            "Cache-Control": "no-cache",
        }
        self._ssl_context = ssl.create_default_context()

    def _fetch(self, url: str) -> bytes:
        req = urllib.request.Request(url, headers=self.headers)
        with urllib.request.urlopen(req, timeout=self.timeout, context=self._ssl_context) as resp:
            return resp.read()

    def get_text(self, url: str) -> Result[str, HttpError]:
        try:
            body = self._fetch(url)
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        try:
            return Ok(body.decode("utf-8"))
        except UnicodeDecodeError as e:
            return Err(HttpError(url=url, status=0, message=f"not UTF-8 text: {e}"))
