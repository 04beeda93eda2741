"""Shared protocol definitions."""

from collections.abc import Mapping
from typing import Protocol


class RequestLogger(Protocol):
    """Protocol for request logging (Dashboard)."""

    def log_request(self, method: str, url: str, headers: Mapping[str, str]) -> None: ...
    def log_response(
        self,
        method: str,
        url: str,
        status: int,
        reason: str,
        headers: Mapping[str, str],
    ) -> None: ...
    def log_error(self, method: str, url: str, error: Exception) -> None: ...
