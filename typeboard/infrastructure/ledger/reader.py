"""Full scan of the score topic, newest message first."""
import asyncio
import logging
from typing import List

from typeboard.domain.codec import decode_message
from typeboard.domain.errors import LedgerUnavailable
from typeboard.domain.score import ScoreRecord

log = logging.getLogger("typeboard.ledger")


class ScanResult:
    """Records decoded by one scan and whether the scan ran to completion."""

    def __init__(self, records: List[ScoreRecord], complete: bool,
                 pages: int, skipped: int, error: str | None = None):
        self.records = records
        self.complete = complete
        self.pages = pages
        self.skipped = skipped
        self.error = error


class LedgerReader:
    """Paginates the ledger and decodes every message it can."""

    def __init__(self, ledger, fetch_cap: int = 2000, page_timeout: float | None = None):
        self._ledger = ledger
        self._fetch_cap = fetch_cap
        self._page_timeout = page_timeout

    async def _fetch_page(self, cursor):
        if self._page_timeout is None:
            return await self._ledger.fetch_page(cursor)
        try:
            return await asyncio.wait_for(self._ledger.fetch_page(cursor), self._page_timeout)
        except asyncio.TimeoutError as exc:
            raise LedgerUnavailable("Ledger page fetch timed out") from exc

    async def scan(self) -> ScanResult:
        """
        Walk pages until the cursor runs out, a page fails, or fetch_cap
        records are decoded. A failed page ends the scan with whatever was
        collected so far; it never raises.
        """
        records: List[ScoreRecord] = []
        cursor = None
        pages = 0
        skipped = 0

        while True:
            try:
                page = await self._fetch_page(cursor)
            except LedgerUnavailable as exc:
                log.warning(
                    "Ledger scan stopped after %d page(s), %d record(s): %s",
                    pages, len(records), exc,
                )
                return ScanResult(records, False, pages, skipped, str(exc))
            pages += 1

            for payload in page.messages:
                record = decode_message(payload)
                if record is None:
                    skipped += 1
                    log.debug("Skipping undecodable ledger message %.40r", payload)
                    continue
                records.append(record)
                if len(records) >= self._fetch_cap:
                    log.info("Ledger scan reached cap of %d records", self._fetch_cap)
                    return ScanResult(records, False, pages, skipped)

            if not page.next_cursor:
                return ScanResult(records, True, pages, skipped)
            cursor = page.next_cursor

    async def fetch_all(self) -> List[ScoreRecord]:
        """Decoded records in ledger order (newest first). Partial on failure."""
        result = await self.scan()
        return result.records
