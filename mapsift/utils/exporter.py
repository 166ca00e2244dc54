"""
Export collected records to JSON.
"""

import json
from pathlib import Path
from typing import List

from loguru import logger


def _ensure_dir(path: Path) -> None:
    """Create parent directories if they don't exist."""
    path.parent.mkdir(parents=True, exist_ok=True)


def export_to_json(records: List[dict], output_path: Path) -> Path:
    """
    Write record dicts (as produced by ``Business.to_record``) to a JSON file.

    Returns the resolved output path.
    """
    _ensure_dir(output_path)
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(records, fh, ensure_ascii=False, indent=2, default=str)
    logger.info("JSON exported ({} records)  ->  {}", len(records), output_path)
    return output_path


def output_path_for(query: str, output_dir: Path) -> Path:
    """Filesystem-safe ``<query>_results.json`` under *output_dir*."""
    safe_name = "".join(
        ch if ch.isalnum() or ch in "-_" else "_" for ch in query.strip().lower()
    )[:60]
    return output_dir / f"{safe_name or 'search'}_results.json"
