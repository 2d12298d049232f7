"""Assemble and persist run reports."""

from __future__ import annotations

import json
import logging
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterable

from .errors import ScrapeError
from .models import ProductRecord, RunReport, SearchSpec

logger = logging.getLogger(__name__)


def assemble(
    spec: SearchSpec,
    records: Iterable[ProductRecord],
    *,
    error: ScrapeError | None = None,
    pages_visited: int = 0,
) -> RunReport:
    """Combine the accumulated records with run metadata."""
    return RunReport(
        spec=spec,
        products=tuple(records),
        scraped_at=datetime.now(UTC),
        pages_visited=pages_visited,
        error=error,
    )


def save_report(report: RunReport, path: Path | str) -> Path:
    """Write the report as JSON and return the file path."""
    json_file = Path(path)
    if json_file.parent != Path("."):
        json_file.parent.mkdir(parents=True, exist_ok=True)

    json_file.write_text(
        json.dumps(report.to_dict(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    logger.info(f"Saved {report.total_products} products to {json_file}")
    return json_file
