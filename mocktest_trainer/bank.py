from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from .models import QuestionBankError, TestKind

logger = logging.getLogger(__name__)

RawRecord = Mapping[str, object]


class QuestionBank(Protocol):
    """Read-only source of raw question records. Order is not meaningful."""

    def list_questions(self, kind: TestKind) -> Sequence[RawRecord]:
        ...


class InMemoryQuestionBank:
    """Bank backed by a dict of ``{kind or table name: [record, ...]}``."""

    def __init__(self, records: Mapping[str, Sequence[RawRecord]]) -> None:
        self._records: dict[TestKind, list[RawRecord]] = {kind: [] for kind in TestKind}
        for key, items in records.items():
            kind = _kind_for_key(key)
            self._records[kind] = [dict(r) for r in items]

    def list_questions(self, kind: TestKind) -> list[RawRecord]:
        return [dict(r) for r in self._records[TestKind(kind)]]


class JsonQuestionBank:
    """Bank stored as one JSON object keyed by table name.

    The file is re-read on every call so edits made by an administrator show up
    on the next test start.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def list_questions(self, kind: TestKind) -> list[RawRecord]:
        kind = TestKind(kind)
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise QuestionBankError(f"cannot read question bank {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise QuestionBankError(f"question bank {self._path} is not valid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise QuestionBankError(f"question bank {self._path} must hold a JSON object")

        items = payload.get(kind.table, [])
        if not isinstance(items, list):
            raise QuestionBankError(f"{kind.table} in {self._path} must be a list")

        logger.debug("loaded %d %s records from %s", len(items), kind.value, self._path)
        return list(items)


def _kind_for_key(key: str) -> TestKind:
    for kind in TestKind:
        if key in (kind, kind.value, kind.table):
            return kind
    raise ValueError(f"unknown question table {key!r}")
