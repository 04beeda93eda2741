"""Shared request data types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PreparedRequest:
    """Prepared data for a single upstream auth request."""

    method: str
    target_url: str
    headers: dict[str, str]
    body: bytes | None
