"""
Shared pytest fixtures for the TYPEBOARD test suite.

Strategy:
- Domain tests: pure in-memory, zero I/O.
- Infrastructure/application tests: FakeLedger + JSON cache in tmp_path;
  async units are driven with asyncio.run().
- API tests: FastAPI TestClient over create_app() with the FakeLedger injected.
  No real ledger or network is ever touched.
"""
import asyncio
import base64
import os

import pytest

# Never pick up a developer's real ledger credentials
for _var in ("LEDGER_MIRROR_URL", "LEDGER_GATEWAY_URL", "TOPIC_ID", "OPERATOR_ID", "OPERATOR_KEY"):
    os.environ.pop(_var, None)

from typeboard.config import LeaderboardMode, Settings
from typeboard.domain.codec import encode_message
from typeboard.domain.errors import LedgerUnavailable
from typeboard.domain.score import ScoreRecord
from typeboard.infrastructure.ledger.client import LedgerPage
from typeboard.infrastructure.ledger.reader import LedgerReader
from typeboard.infrastructure.repositories.leaderboard_repository import LeaderboardRepository


# ---------------------------------------------------------------------------
# Domain helpers (reusable across many test modules)
# ---------------------------------------------------------------------------

def make_record(name="alice", wpm=80, mistakes=2, cpm=390) -> ScoreRecord:
    return ScoreRecord(name, wpm, mistakes, cpm)


def make_payload(name="alice", wpm=80, mistakes=2, cpm=390) -> dict:
    return {"name": name, "wpm": wpm, "mistakes": mistakes, "cpm": cpm}


def run(coro):
    return asyncio.run(coro)


class FakeLedger:
    """In-memory append-only topic implementing the LedgerClient interface."""

    def __init__(self, page_size: int = 3):
        self.page_size = page_size
        self.messages = []          # base64 payloads, oldest first
        self.unreachable = False    # every call raises LedgerUnavailable
        self.fail_confirm = False
        self.confirm_delay = 0.0
        self.fail_page = None       # 0-based page index that fails
        self.mirror_lag = 0         # newest messages not yet served by the mirror
        self.submit_calls = 0
        self.confirm_calls = []
        self.page_calls = 0

    def seed(self, *records: ScoreRecord) -> None:
        for record in records:
            self.messages.append(base64.b64encode(encode_message(record)).decode("ascii"))

    def seed_raw(self, text: str) -> None:
        self.messages.append(base64.b64encode(text.encode("utf-8")).decode("ascii"))

    async def submit(self, message: bytes) -> str:
        if self.unreachable:
            raise LedgerUnavailable("ledger unreachable")
        self.submit_calls += 1
        self.messages.append(base64.b64encode(message).decode("ascii"))
        return f"0.0.1001@1700000000.{self.submit_calls:09d}"

    async def confirm(self, transaction_id: str) -> None:
        self.confirm_calls.append(transaction_id)
        if self.confirm_delay:
            await asyncio.sleep(self.confirm_delay)
        if self.unreachable or self.fail_confirm:
            raise LedgerUnavailable("receipt unavailable", transaction_id)

    async def fetch_page(self, cursor=None) -> LedgerPage:
        self.page_calls += 1
        if self.unreachable:
            raise LedgerUnavailable("ledger unreachable")
        start = int(cursor) if cursor else 0
        if self.fail_page is not None and start // self.page_size == self.fail_page:
            raise LedgerUnavailable(f"page {self.fail_page} failed")
        visible = self.messages[:len(self.messages) - self.mirror_lag]
        newest_first = list(reversed(visible))
        chunk = newest_first[start:start + self.page_size]
        end = start + self.page_size
        return LedgerPage(chunk, str(end) if end < len(newest_first) else None)


# ---------------------------------------------------------------------------
# pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def scores_path(tmp_path):
    return str(tmp_path / "data" / "scores.json")


@pytest.fixture
def repository(scores_path):
    return LeaderboardRepository(data_path=scores_path)


@pytest.fixture
def reader(ledger):
    return LedgerReader(ledger, fetch_cap=2000)


def make_settings(scores_file: str, **overrides) -> Settings:
    kwargs = dict(
        mirror_url="https://mirror.test",
        gateway_url="https://gateway.test",
        topic_id="0.0.5005",
        operator_id="0.0.1001",
        operator_key="test-operator-key",
        scores_file=scores_file,
        confirm_timeout=0.5,
        ledger_timeout=1.0,
        admin_token="admin-secret",
    )
    kwargs.update(overrides)
    return Settings(**kwargs)


@pytest.fixture
def settings(scores_path):
    return make_settings(scores_path)


@pytest.fixture
def stateless_settings(scores_path):
    return make_settings(scores_path, mode=LeaderboardMode.STATELESS)


@pytest.fixture
def test_app(settings, ledger):
    from typeboard.main import create_app
    return create_app(settings, ledger=ledger)


@pytest.fixture
def client(test_app):
    from fastapi.testclient import TestClient
    with TestClient(test_app) as c:
        yield c


@pytest.fixture
def admin_headers():
    return {"Authorization": "Bearer admin-secret"}
