"""Tests for LedgerReader pagination and decoding."""
import asyncio

from typeboard.infrastructure.ledger.client import LedgerPage
from typeboard.infrastructure.ledger.reader import LedgerReader
from tests.conftest import FakeLedger, make_record, run


class TestFetchAll:
    def test_empty_topic(self, reader):
        assert run(reader.fetch_all()) == []

    def test_newest_first_across_pages(self, ledger, reader):
        records = [make_record(f"p{i}", wpm=i) for i in range(7)]
        ledger.seed(*records)
        fetched = run(reader.fetch_all())
        assert fetched == list(reversed(records))
        assert ledger.page_calls == 3

    def test_malformed_message_is_skipped(self, ledger, reader):
        ledger.seed(make_record("alice", 80, 2, 390))
        ledger.seed_raw("garbage-without-separators")
        ledger.seed(make_record("bob", 95, 1, 470))
        ledger.seed(make_record("carol", 70, 4, 350))
        fetched = run(reader.fetch_all())
        assert fetched == [
            make_record("carol", 70, 4, 350),
            make_record("bob", 95, 1, 470),
            make_record("alice", 80, 2, 390),
        ]

    def test_failed_page_returns_partial_results(self, ledger, reader):
        ledger.seed(*[make_record(f"p{i}") for i in range(9)])
        ledger.fail_page = 1
        assert len(run(reader.fetch_all())) == 3

    def test_unreachable_ledger_returns_empty(self, ledger, reader):
        ledger.seed(make_record())
        ledger.unreachable = True
        assert run(reader.fetch_all()) == []

    def test_cap_bounds_results(self, ledger):
        ledger.seed(*[make_record(f"p{i}") for i in range(10)])
        capped = LedgerReader(ledger, fetch_cap=4)
        fetched = run(capped.fetch_all())
        assert len(fetched) == 4
        assert ledger.page_calls == 2


class TestScan:
    def test_complete_scan(self, ledger, reader):
        ledger.seed(make_record())
        ledger.seed_raw("x:y")
        scan = run(reader.scan())
        assert scan.complete
        assert scan.error is None
        assert scan.pages == 1
        assert scan.skipped == 1

    def test_failed_scan_reports_error(self, ledger, reader):
        ledger.unreachable = True
        scan = run(reader.scan())
        assert not scan.complete
        assert scan.error
        assert scan.pages == 0

    def test_capped_scan_is_incomplete_without_error(self, ledger):
        ledger.seed(*[make_record(f"p{i}") for i in range(5)])
        scan = run(LedgerReader(ledger, fetch_cap=2).scan())
        assert not scan.complete
        assert scan.error is None

    def test_slow_page_times_out_as_partial(self):
        class SlowLedger(FakeLedger):
            async def fetch_page(self, cursor=None):
                if cursor:
                    await asyncio.sleep(1)
                return await super().fetch_page(cursor)

        ledger = SlowLedger(page_size=2)
        ledger.seed(*[make_record(f"p{i}") for i in range(4)])
        scan = run(LedgerReader(ledger, page_timeout=0.05).scan())
        assert len(scan.records) == 2
        assert scan.error

    def test_page_without_cursor_stops(self):
        class OnePage:
            calls = 0

            async def fetch_page(self, cursor=None):
                OnePage.calls += 1
                return LedgerPage([], None)

        scan = run(LedgerReader(OnePage()).scan())
        assert scan.complete
        assert OnePage.calls == 1
