"""Ad-hoc query view: one model and one filter exposed as a directory.

The directory lists the ids matching the filter. Reading or stat-ing an id
runs the filter again, intersected with that id, so a record outside the
view can never be reached by guessing its id.
"""

import fnmatch
import json
from typing import Any, Optional, Protocol

from ..types import FSEntry, FSError, Mount, split_path

DEFAULT_ROW_LIMIT = 1000


class RecordSource(Protocol):
    """Data collaborator that evaluates filters against a model."""

    async def select(self, model: str, where: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        ...


def _equal(value: Any, operand: Any) -> bool:
    # Ids arrive from paths as strings.
    if isinstance(value, int) and isinstance(operand, str) and not isinstance(value, bool):
        return str(value) == operand
    return value == operand


def _compare(value: Any, op: str, operand: Any) -> bool:
    if op == "$eq":
        return _equal(value, operand)
    if op == "$ne":
        return not _equal(value, operand)
    if op == "$in":
        return any(_equal(value, o) for o in operand)
    if op == "$nin":
        return not any(_equal(value, o) for o in operand)
    if op == "$like":
        if not isinstance(value, str):
            return False
        return fnmatch.fnmatchcase(value, str(operand).replace("%", "*").replace("_", "?"))
    if value is None:
        return False
    try:
        if op == "$gt":
            return value > operand
        if op == "$gte":
            return value >= operand
        if op == "$lt":
            return value < operand
        if op == "$lte":
            return value <= operand
    except TypeError:
        return False
    raise ValueError(f"unsupported filter operator: {op}")


def matches(record: dict[str, Any], where: dict[str, Any]) -> bool:
    """Evaluate a filter document against one record."""
    for key, condition in where.items():
        if key == "$and":
            if not all(matches(record, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(record, sub) for sub in condition):
                return False
        elif isinstance(condition, dict):
            value = record.get(key)
            if not all(_compare(value, op, operand) for op, operand in condition.items()):
                return False
        elif not _equal(record.get(key), condition):
            return False
    return True


class InMemoryRecordSource:
    """RecordSource over plain dictionaries keyed by model name."""

    def __init__(self, models: Optional[dict[str, list[dict[str, Any]]]] = None):
        self.models = {name: list(rows) for name, rows in (models or {}).items()}

    async def select(self, model: str, where: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        rows = [row for row in self.models.get(model, []) if matches(row, where)]
        return rows[:limit]


class FilterMount(Mount):
    def __init__(
        self,
        source: RecordSource,
        model: str,
        where: Optional[dict[str, Any]] = None,
        limit: int = DEFAULT_ROW_LIMIT,
    ):
        self.source = source
        self.model = model
        self.where = dict(where or {})
        self.limit = limit

    async def _find(self, record_id: str, path: str) -> dict[str, Any]:
        where = {"$and": [self.where, {"id": record_id}]} if self.where else {"id": record_id}
        rows = await self.source.select(self.model, where, 1)
        if not rows:
            raise FSError("ENOENT", path)
        return rows[0]

    def _record_id(self, path: str) -> Optional[str]:
        parts = split_path(path)
        if not parts:
            return None
        if len(parts) > 1:
            raise FSError("ENOENT", path)
        return parts[0]

    @staticmethod
    def _render(record: dict[str, Any]) -> bytes:
        return (json.dumps(record, indent=2, default=str) + "\n").encode("utf-8")

    async def stat(self, path: str) -> FSEntry:
        record_id = self._record_id(path)
        if record_id is None:
            return FSEntry(name=self.model, type="directory", size=0, mode=0o555)
        record = await self._find(record_id, path)
        return FSEntry(name=record_id, type="file", size=len(self._render(record)), mode=0o444)

    async def readdir(self, path: str) -> list[FSEntry]:
        if self._record_id(path) is not None:
            raise FSError("ENOTDIR", path)
        rows = await self.source.select(self.model, self.where, self.limit)
        return [
            FSEntry(name=str(row["id"]), type="file", size=len(self._render(row)), mode=0o444)
            for row in rows
            if "id" in row
        ]

    async def read(self, path: str) -> bytes:
        record_id = self._record_id(path)
        if record_id is None:
            raise FSError("EISDIR", path)
        return self._render(await self._find(record_id, path))
