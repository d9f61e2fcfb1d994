"""Use case: submit a finished run and report its provisional rank.

Received -> Validated -> Submitted -> Confirmed -> Cached -> Ranked -> Responded

A confirmation failure is reported as a failed submission even though the
message may already be on the ledger; the next sync will pick it up.
"""
import asyncio
import logging

from typeboard.config import LeaderboardMode
from typeboard.domain.codec import encode_message
from typeboard.domain.errors import LedgerUnavailable
from typeboard.domain.ranking import merge, rank
from typeboard.domain.score import ScoreLimits, validate_submission

log = logging.getLogger("typeboard.submit")


class SubmissionResult:
    def __init__(self, rank: int, total_entries: int, provisional: bool = True,
                 transaction_id: str | None = None):
        self.rank = rank
        self.total_entries = total_entries
        self.provisional = provisional
        self.transaction_id = transaction_id

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "total_entries": self.total_entries,
            "provisional": self.provisional,
        }


class SubmissionCoordinator:
    """Orchestrates validate -> ledger write -> confirm -> cache -> rank."""

    def __init__(
        self,
        ledger,
        reader,
        repository,
        limits: ScoreLimits | None = None,
        mode: LeaderboardMode = LeaderboardMode.CACHED,
        confirm_timeout: float = 30.0,
    ):
        self._ledger = ledger
        self._reader = reader
        self._repository = repository
        self._limits = limits or ScoreLimits()
        self._mode = LeaderboardMode(mode)
        self._confirm_timeout = confirm_timeout

    @property
    def mode(self) -> LeaderboardMode:
        return self._mode

    async def submit(self, payload) -> SubmissionResult:
        record = validate_submission(payload, self._limits)

        transaction_id = await self._ledger.submit(encode_message(record))
        log.info("Submitted %r to ledger as %s", record, transaction_id)

        try:
            await asyncio.wait_for(
                self._ledger.confirm(transaction_id), self._confirm_timeout
            )
        except asyncio.TimeoutError as exc:
            log.error("Ledger confirmation timed out for %s", transaction_id)
            raise LedgerUnavailable(
                "Ledger confirmation timed out; the score may still appear after the next sync",
                transaction_id,
            ) from exc
        except LedgerUnavailable as exc:
            log.error("Ledger confirmation failed for %s: %s", transaction_id, exc)
            if exc.transaction_id is None:
                exc.transaction_id = transaction_id
            raise

        if self._mode is LeaderboardMode.CACHED:
            snapshot = await self._repository.append(record)
        else:
            snapshot = await self._reader.fetch_all()

        position = rank(snapshot, record)
        total = len(snapshot) if record in snapshot else len(snapshot) + 1
        return SubmissionResult(position, total, True, transaction_id)

    async def authoritative_rank(self, payload) -> SubmissionResult:
        """
        Rank a candidate against a complete ledger scan without writing it.
        In cached mode the scan is merged with the local cache, which may hold
        confirmed scores the mirror has not caught up with yet. The cache
        itself is left alone. Raises LedgerUnavailable when the scan is
        incomplete.
        """
        record = validate_submission(payload, self._limits)

        scan = await self._reader.scan()
        if scan.error is not None:
            raise LedgerUnavailable(f"Ledger scan incomplete: {scan.error}")

        if self._mode is LeaderboardMode.CACHED:
            cached = await asyncio.to_thread(self._repository.load)
            snapshot = merge(scan.records, cached)
        else:
            snapshot = scan.records

        return SubmissionResult(rank(snapshot, record), len(snapshot), provisional=False)
