"""Leaderboard cache persistence (JSON file).

The file is a projection of the ledger: a JSON array of
``{name, wpm, mistakes, cpm}`` objects in canonical order. It can be deleted
at any time and rebuilt by the sync service.
"""
import asyncio
import json
import logging
import os
from typing import List

from typeboard.domain.errors import CacheCorrupt
from typeboard.domain.ranking import sort_scores
from typeboard.domain.score import ScoreRecord

log = logging.getLogger("typeboard.cache")


class LeaderboardRepository:
    """File-based leaderboard cache with a single writer per process."""

    def __init__(self, data_path: str = "data/scores.json"):
        self._data_path = data_path
        self._write_lock = asyncio.Lock()

    @property
    def data_path(self) -> str:
        return self._data_path

    def load(self) -> List[ScoreRecord]:
        """Last persisted snapshot; empty when missing or unreadable."""
        try:
            return self._read()
        except CacheCorrupt as exc:
            log.warning("Ignoring corrupt leaderboard cache %s: %s", self._data_path, exc)
            return []

    def save(self, snapshot: List[ScoreRecord]) -> None:
        """Replace the file atomically: write a temp file, fsync, then rename."""
        directory = os.path.dirname(self._data_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        data = [record.to_dict() for record in snapshot]
        tmp_path = f"{self._data_path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self._data_path)

    async def append(self, record: ScoreRecord) -> List[ScoreRecord]:
        """Add one record and return the new canonical snapshot."""
        async with self._write_lock:
            current = await asyncio.to_thread(self.load)
            current.append(record)
            snapshot = sort_scores(current)
            await asyncio.to_thread(self.save, snapshot)
            return snapshot

    async def replace(self, records: List[ScoreRecord]) -> List[ScoreRecord]:
        """Discard the cache and persist ``records`` in canonical order."""
        snapshot = sort_scores(records)
        async with self._write_lock:
            await asyncio.to_thread(self.save, snapshot)
        return snapshot

    def _read(self) -> List[ScoreRecord]:
        if not os.path.exists(self._data_path):
            return []
        try:
            with open(self._data_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            raise CacheCorrupt(str(exc)) from exc
        if not isinstance(data, list):
            raise CacheCorrupt("top-level JSON value is not an array")

        records = []
        dropped = 0
        for row in data:
            try:
                records.append(ScoreRecord.from_dict(row))
            except (KeyError, TypeError, ValueError):
                dropped += 1
        if dropped:
            log.warning("Dropped %d malformed row(s) from %s", dropped, self._data_path)
        return records
