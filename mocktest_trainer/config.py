from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .models import TestKind

BANK_PATH_ENV = "MOCKTEST_BANK_PATH"
DB_PATH_ENV = "MOCKTEST_DB_PATH"
DURATION_ENV_TEMPLATE = "MOCKTEST_DURATION_{kind}_S"

DEFAULT_DURATIONS_S: dict[TestKind, int] = {
    TestKind.APTITUDE: 20 * 60,
    TestKind.TECHNICAL: 30 * 60,
    TestKind.GD: 10 * 60,
}

# Seed variant per kind; bump one to give every user a fresh ordering.
DEFAULT_VARIANTS: dict[TestKind, int] = {
    TestKind.APTITUDE: 1,
    TestKind.TECHNICAL: 2,
    TestKind.GD: 3,
}


def sample_bank_path() -> Path:
    return Path(__file__).resolve().parent / "data" / "sample_bank.json"


def default_db_path() -> Path:
    return Path.home() / ".mocktest_trainer_progress.sqlite3"


@dataclass(frozen=True, slots=True)
class MockTestConfig:
    durations_s: Mapping[TestKind, int] = field(default_factory=lambda: dict(DEFAULT_DURATIONS_S))
    variants: Mapping[TestKind, int] = field(default_factory=lambda: dict(DEFAULT_VARIANTS))
    bank_path: Path = field(default_factory=sample_bank_path)
    db_path: Path = field(default_factory=default_db_path)

    def __post_init__(self) -> None:
        for kind in TestKind:
            if int(self.durations_s.get(kind, 0)) <= 0:
                raise ValueError(f"duration for {kind.value} must be > 0")
            if kind not in self.variants:
                raise ValueError(f"missing seed variant for {kind.value}")

    def duration_for(self, kind: TestKind) -> int:
        return int(self.durations_s[kind])

    def variant_for(self, kind: TestKind) -> int:
        return int(self.variants[kind])

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "MockTestConfig":
        env = os.environ if environ is None else environ

        durations = dict(DEFAULT_DURATIONS_S)
        for kind in TestKind:
            raw = env.get(DURATION_ENV_TEMPLATE.format(kind=kind.value.upper()))
            if raw is None or raw.strip() == "":
                continue
            try:
                durations[kind] = int(raw)
            except ValueError:
                raise ValueError(f"invalid duration for {kind.value}: {raw!r}") from None

        bank_raw = env.get(BANK_PATH_ENV)
        db_raw = env.get(DB_PATH_ENV)
        return cls(
            durations_s=durations,
            bank_path=Path(bank_raw).expanduser() if bank_raw else sample_bank_path(),
            db_path=Path(db_raw).expanduser() if db_raw else default_db_path(),
        )
