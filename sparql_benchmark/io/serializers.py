"""
Result Serializers.

Write result records or aggregate records to disk, as raw JSON or as a
delimited table.
"""

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Protocol

import structlog

from sparql_benchmark.benchmark.results import ResultRecord

logger = structlog.get_logger(__name__)


class SerializableResult(Protocol):
    def to_dict(self) -> dict[str, Any]:
        ...


def _reduce_error(data: dict[str, Any]) -> dict[str, Any]:
    """Replace the error flag by the error message when there is one."""
    message = data.pop("error_message", None)
    if data.get("error") and message:
        data["error"] = message
    return data


class ResultSerializer(ABC):
    """Writes benchmark results to a file."""

    @abstractmethod
    def serialize(self, path: str | Path, results: list[SerializableResult]) -> None:
        pass


class ResultSerializerRaw(ResultSerializer):
    """Raw JSON list of results."""

    def serialize(self, path: str | Path, results: list[SerializableResult]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = [_reduce_error(result.to_dict()) for result in results]
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        logger.info("Results saved", path=str(path), results=len(data), format="json")


class ResultSerializerCsv(ResultSerializer):
    """
    Delimited table of results.

    Lists are joined with ``array_separator``, mappings are written as JSON.
    """

    def __init__(self, column_separator: str = ";", array_separator: str = " "):
        self.column_separator = column_separator
        self.array_separator = array_separator

    def _cell(self, value: Any) -> Any:
        if isinstance(value, list):
            return self.array_separator.join(str(v) for v in value)
        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False)
        if value is None:
            return ""
        return value

    def serialize(self, path: str | Path, results: list[SerializableResult]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        rows = [_reduce_error(result.to_dict()) for result in results]
        columns: list[str] = []
        for row in rows:
            columns.extend(key for key in row if key not in columns)

        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=columns, delimiter=self.column_separator)
            writer.writeheader()
            for row in rows:
                writer.writerow({key: self._cell(value) for key, value in row.items()})

        logger.info("Results saved", path=str(path), results=len(rows), format="csv")


def read_raw_results(path: str | Path) -> list[dict[str, Any]]:
    """Read a file written by ResultSerializerRaw."""
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def load_result_records(path: str | Path) -> list[ResultRecord]:
    """Read raw results back into result records, e.g. to aggregate several runs."""
    return [ResultRecord.from_dict(data) for data in read_raw_results(path)]
