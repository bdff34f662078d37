"""Shared logging utilities."""

import json
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"

SENSITIVE_HEADER_MARKERS = ("key", "authorization", "cookie", "token")


def write_request_log(
    method: str,
    target_url: str,
    headers: dict[str, str],
    body_size: int,
    *,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single inbound request log entry."""
    payload = {
        "timestamp": _utc_now(),
        "method": method,
        "target": target_url,
        "headers": _redact_headers(headers),
        "body_size": body_size,
    }
    return _write_json(log_root / "requests", payload)


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path | None = None,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file = log_file or CLI_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def clear_logs(log_root: Path = LOG_ROOT) -> None:
    """Remove per-request logs from a previous run."""
    shutil.rmtree(log_root / "requests", ignore_errors=True)


class FileLogger:
    """Headless request logger that only writes the CLI log file."""

    def __init__(self, log_file: Path | None = None) -> None:
        self._log_file = log_file

    def log_request(self, method: str, target_url: str) -> None:
        write_cli_log("REQUEST", target_url, log_file=self._log_file, method=method)

    def log_response(
        self,
        method: str,
        target_url: str,
        status: int,
        *,
        reason: str = "",
        rewritten: bool = False,
    ) -> None:
        write_cli_log(
            "REWRITTEN" if rewritten else "PASSTHROUGH",
            target_url,
            log_file=self._log_file,
            method=method,
            status=f"{status} {reason}".strip(),
        )

    def log_error(self, target_url: str, status: int, message: str) -> None:
        write_cli_log(
            "ERROR", message[:200], log_file=self._log_file, target=target_url, status=status
        )


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers."""
    redacted = {}
    for key, value in headers.items():
        if any(marker in key.lower() for marker in SENSITIVE_HEADER_MARKERS):
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
