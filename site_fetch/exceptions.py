"""Errors captured on failed pages."""
from __future__ import annotations


class FetchError(Exception):
    """A fetch that produced no usable response."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message}: {url}")
        self.url = url


class RetryLimitExceeded(FetchError):
    """Every attempt of a request ended in a transient network fault."""

    def __init__(self, url: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(url, f"gave up after {attempts} attempt(s) ({last_error!r})")
        self.attempts = attempts
        self.__cause__ = last_error


__all__ = ["FetchError", "RetryLimitExceeded"]
