from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

from .logging_utils import get_logger, log_action

logger = get_logger(__name__)

DEFAULT_EXPORT_DIR = "exports"
EMPTY_VALUE = "-"
SENSITIVE_KEYS = ("token", "secret", "password", "pin")


def sanitize_row(row: Mapping[str, Any], headers: Sequence[str]) -> dict[str, str]:
    sanitized: dict[str, str] = {}
    for header in headers:
        if any(token in header.lower() for token in SENSITIVE_KEYS):
            sanitized[header] = EMPTY_VALUE
            continue
        value = row.get(header)
        text = "" if value is None else str(value).strip()
        sanitized[header] = text or EMPTY_VALUE
    return sanitized


def export_rows(
    *,
    resource: str,
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    output_dir: str | Path = DEFAULT_EXPORT_DIR,
    filters: Mapping[str, str] | None = None,
    now: datetime | None = None,
) -> Path:
    """Write ``rows`` to ``<output_dir>/<resource>_<timestamp>.csv``.

    The file opens with ``#`` comment lines recording when it was written and
    the filters the rows were listed under.
    """
    destination = Path(output_dir)
    destination.mkdir(parents=True, exist_ok=True)

    stamp = (now or datetime.now()).astimezone()
    path = destination / f"{resource}_{stamp.strftime('%Y%m%d_%H%M%S')}.csv"

    with path.open("w", newline="", encoding="utf-8-sig") as handle:
        handle.write(f"# timestamp_local: {stamp.isoformat()}\n")
        handle.write(f"# resource: {resource}\n")
        handle.write(f"# rows: {len(rows)}\n")
        handle.write(f"# filters: {dict(filters or {})}\n")
        writer = csv.DictWriter(handle, fieldnames=list(headers), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(sanitize_row(row, headers))

    log_action(logger, resource, "export", "success", rows=len(rows), path=str(path))
    return path
