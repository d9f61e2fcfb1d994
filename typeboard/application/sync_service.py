"""Use case: rebuild the local cache from a full ledger scan."""
import logging

from typeboard.domain.errors import LedgerUnavailable

log = logging.getLogger("typeboard.sync")


class SyncReport:
    def __init__(self, records: int, pages: int, skipped: int, truncated: bool):
        self.records = records
        self.pages = pages
        self.skipped = skipped
        self.truncated = truncated

    def to_dict(self) -> dict:
        return {
            "records": self.records,
            "pages": self.pages,
            "skipped": self.skipped,
            "truncated": self.truncated,
            "source": "ledger",
        }


class SyncService:
    """Makes the cache a projection of the ledger."""

    def __init__(self, reader, repository):
        self._reader = reader
        self._repository = repository

    async def rebuild(self):
        """
        Replace the cache with the ledger's contents.
        Raises LedgerUnavailable (and leaves the cache untouched) if any page
        failed, since a partial scan would silently drop cached scores.
        """
        scan = await self._reader.scan()
        if scan.error is not None:
            raise LedgerUnavailable(f"Sync aborted, cache left untouched: {scan.error}")

        snapshot = await self._repository.replace(scan.records)
        report = SyncReport(
            records=len(snapshot),
            pages=scan.pages,
            skipped=scan.skipped,
            truncated=not scan.complete,
        )
        log.info(
            "Cache rebuilt from ledger: %d record(s), %d page(s), %d skipped%s",
            report.records, report.pages, report.skipped,
            " (truncated at cap)" if report.truncated else "",
        )
        return report

    async def rebuild_on_startup(self) -> SyncReport | None:
        """Startup variant: failure is logged and the existing cache keeps serving."""
        try:
            return await self.rebuild()
        except LedgerUnavailable as exc:
            log.error("Startup sync failed, serving existing cache: %s", exc)
            return None
