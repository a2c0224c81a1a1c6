"""Command line entry point: ``python -m mocktest_trainer`` or ``mocktest-trainer``."""

from __future__ import annotations

from .app import run


def main() -> int:
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
