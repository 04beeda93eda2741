"""Path routing - maps a local auth path onto the upstream service."""

from collections.abc import Iterable
from urllib.parse import quote

# Segments that would climb out of the upstream base path
DOT_SEGMENTS = {".", ".."}


def split_path(path: str) -> list[str]:
    """Split a captured route tail into its segments.

    Empty and dot segments are dropped so the result stays under the base URL.
    """
    return [segment for segment in path.split("/") if segment and segment not in DOT_SEGMENTS]


def join_path(segments: Iterable[str]) -> str:
    """Percent-encode and join path segments with `/`, dropping empty ones.

    Zero segments join to the empty string. `?`, `#` and `/` inside a
    segment are escaped and never change the URL structure.
    """
    return "/".join(quote(segment, safe="") for segment in segments if segment)


def build_target_url(base_url: str, path: str, query: str = "") -> str:
    """Return `<base>/<path>[?query]` without doubled slashes."""
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    if query:
        url = f"{url}?{query}"
    return url
