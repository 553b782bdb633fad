"""Reading metric records collected by an upstream fetcher."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from dephealth.errors import RecordFileError
from dephealth.models.schemas import MetricRecord

logger = logging.getLogger(__name__)


def parse_records(data: object, source: str = "records") -> list[MetricRecord]:
    """Parse metric records from decoded JSON.

    Accepts a list of records, ``{"packages": [...]}``, or a mapping of
    package name to record (the name is filled in from the key).

    Raises:
        RecordFileError: If the data has the wrong shape or a record is invalid.
    """
    if isinstance(data, dict) and "packages" in data:
        data = data["packages"]

    if isinstance(data, dict):
        items = []
        for name, fields in data.items():
            if not isinstance(fields, dict):
                raise RecordFileError(f"{source}: record for {name} is not an object")
            items.append({"name": name, **fields})
    elif isinstance(data, list):
        items = data
    else:
        raise RecordFileError(f"{source}: expected a list of records or an object of packages")

    records = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise RecordFileError(f"{source}: record #{i + 1} is not an object")
        try:
            records.append(MetricRecord.model_validate(item))
        except ValidationError as e:
            label = item.get("name") or f"#{i + 1}"
            raise RecordFileError(f"{source}: invalid record {label}\n{e}") from e

    logger.debug(f"Parsed {len(records)} records from {source}")
    return records


def load_records(path: Path | str) -> list[MetricRecord]:
    """Load metric records from a JSON file.

    Raises:
        RecordFileError: If the file is missing, not JSON, or holds invalid records.
    """
    path = Path(path)
    if not path.is_file():
        raise RecordFileError(f"Records file not found: {path}", path=str(path))

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise RecordFileError(f"Invalid JSON in {path}: {e}", path=str(path)) from e

    return parse_records(data, source=str(path))
