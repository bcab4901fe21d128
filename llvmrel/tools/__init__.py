"""Network helpers."""

from .http import HttpClient, HttpError, RealHttpClient

__all__ = ["HttpClient", "HttpError", "RealHttpClient"]
