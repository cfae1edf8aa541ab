"""Append-only result ledger.

The only shared collection between concurrent runs. Entries are never
replaced or removed; readers get snapshots.
"""

from __future__ import annotations

import threading

from ..core.types import AeroResult


class ResultLedger:
    """Thread-safe, insertion-ordered store of completed results."""

    def __init__(self) -> None:
        self._results: list[AeroResult] = []
        self._index: dict[str, int] = {}
        self._lock = threading.Lock()

    def append(self, result: AeroResult) -> None:
        with self._lock:
            if result.id in self._index:
                raise ValueError(f"Result {result.id!r} already recorded")
            self._index[result.id] = len(self._results)
            self._results.append(result)

    def get(self, result_id: str) -> AeroResult | None:
        with self._lock:
            pos = self._index.get(result_id)
            return None if pos is None else self._results[pos]

    def snapshot(self) -> tuple[AeroResult, ...]:
        """All results in insertion order."""
        with self._lock:
            return tuple(self._results)

    def for_file(self, file_name: str) -> tuple[AeroResult, ...]:
        """Results for one upload name, oldest first."""
        return tuple(r for r in self.snapshot() if r.file_name == file_name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def __contains__(self, result_id: object) -> bool:
        with self._lock:
            return result_id in self._index
