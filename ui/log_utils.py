"""Shared logging utilities."""

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"

SENSITIVE_HEADERS = ("authorization",)
COOKIE_HEADERS = ("cookie", "set-cookie")


def write_incoming_log(
    method: str,
    path: str,
    headers: Mapping[str, str],
    *,
    log_root: Path | None = None,
) -> Path:
    """Write a single incoming request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "path": path,
        "headers": _redact_headers(headers),
    }
    return _write_json((log_root or LOG_ROOT) / "incoming", payload)


def write_upstream_log(
    method: str,
    url: str,
    headers: Mapping[str, str],
    *,
    status: int | None = None,
    reason: str | None = None,
    log_root: Path | None = None,
) -> Path:
    """Write a single upstream request or response log entry."""
    payload: dict[str, Any] = {
        "timestamp": _utc_now(),
        "method": method,
        "url": url,
        "headers": _redact_headers(headers),
    }
    folder = "request"
    if status is not None:
        payload["status"] = status
        payload["reason"] = reason
        folder = "response"
    return _write_json((log_root or LOG_ROOT) / "upstream" / folder, payload)


def write_cli_log(
    level: str,
    message: str,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    CLI_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with CLI_LOG_FILE.open("a") as f:
        f.write(line)


def clear_logs(log_root: Path | None = None) -> int:
    """Delete JSON log entries from a previous run."""
    root = log_root or LOG_ROOT
    if not root.exists():
        return 0

    deleted = 0
    for old_file in root.rglob("*.json"):
        try:
            old_file.unlink()
            deleted += 1
        except OSError:
            pass
    return deleted


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Redact credentials and cookies."""
    redacted = {}
    for key, value in headers.items():
        if key.lower() in COOKIE_HEADERS:
            redacted[key] = "***" if value else ""
        elif key.lower() in SENSITIVE_HEADERS:
            redacted[key] = _mask(value)
        else:
            redacted[key] = value
    return redacted


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
