"""Ledger access port and its HTTP implementation.

Write path: submission gateway (signs and forwards to the consensus topic).
    POST {gateway}/topics/{topic}/messages      -> {"transaction_id": "..."}
    GET  {gateway}/transactions/{tx}/receipt    -> {"status": "SUCCESS", ...}

Read path: mirror node REST API, newest first.
    GET  {mirror}/api/v1/topics/{topic}/messages?limit=N&order=desc
         -> {"messages": [{"message": "<base64>", ...}], "links": {"next": "/api/v1/..."}}

Writes are never retried (a retried submit can duplicate a score on the
ledger). Page reads retry with exponential backoff.
"""
import asyncio
import base64
import logging
from typing import List, Protocol

import httpx

from typeboard.domain.errors import LedgerUnavailable

log = logging.getLogger("typeboard.ledger")

RECEIPT_SUCCESS = "SUCCESS"


class LedgerPage:
    """One page of raw ledger messages plus the cursor for the next page."""

    def __init__(self, messages: List[str], next_cursor: str | None = None):
        self.messages = messages
        self.next_cursor = next_cursor

    def __repr__(self):
        return f"LedgerPage({len(self.messages)} messages, next={self.next_cursor!r})"


class LedgerClient(Protocol):
    async def submit(self, message: bytes) -> str:
        """Append a message; return the transaction id."""

    async def confirm(self, transaction_id: str) -> None:
        """Block until the ledger durably accepted the transaction, else raise."""

    async def fetch_page(self, cursor: str | None = None) -> LedgerPage:
        """Fetch one page (first page when cursor is None)."""


class HttpLedgerClient:
    """LedgerClient over httpx. The AsyncClient's lifecycle belongs to the caller."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        mirror_url: str,
        gateway_url: str,
        topic_id: str,
        operator_id: str,
        operator_key: str,
        page_size: int = 100,
        read_retries: int = 2,
        retry_base_delay: float = 0.2,
    ):
        self._http = http
        self._mirror_url = mirror_url.rstrip("/")
        self._gateway_url = gateway_url.rstrip("/")
        self._topic_id = topic_id
        self._operator_id = operator_id
        self._operator_key = operator_key
        self._page_size = page_size
        self._read_retries = read_retries
        self._retry_base_delay = retry_base_delay

    def _auth_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._operator_key}",
            "Accept": "application/json",
        }

    async def submit(self, message: bytes) -> str:
        url = f"{self._gateway_url}/topics/{self._topic_id}/messages"
        body = {
            "message": base64.b64encode(message).decode("ascii"),
            "operator_id": self._operator_id,
        }
        try:
            resp = await self._http.post(url, json=body, headers=self._auth_headers())
            resp.raise_for_status()
            transaction_id = resp.json().get("transaction_id")
        except httpx.HTTPError as exc:
            raise LedgerUnavailable(f"Ledger submit failed: {exc}") from exc
        except ValueError as exc:
            raise LedgerUnavailable("Ledger submit returned invalid JSON") from exc
        if not transaction_id:
            raise LedgerUnavailable("Ledger submit returned no transaction id")
        return transaction_id

    async def confirm(self, transaction_id: str) -> None:
        url = f"{self._gateway_url}/transactions/{transaction_id}/receipt"
        try:
            resp = await self._http.get(url, headers=self._auth_headers())
            resp.raise_for_status()
            status = resp.json().get("status")
        except httpx.HTTPError as exc:
            raise LedgerUnavailable(
                f"Ledger confirmation failed: {exc}", transaction_id
            ) from exc
        except ValueError as exc:
            raise LedgerUnavailable(
                "Ledger receipt was not valid JSON", transaction_id
            ) from exc
        if status != RECEIPT_SUCCESS:
            raise LedgerUnavailable(
                f"Ledger receipt status {status!r}", transaction_id
            )

    def _page_url(self, cursor: str | None) -> str:
        if cursor:
            # mirror returns the next link as a path relative to its root
            if cursor.startswith(("http://", "https://")):
                return cursor
            return f"{self._mirror_url}{cursor}"
        return (
            f"{self._mirror_url}/api/v1/topics/{self._topic_id}/messages"
            f"?limit={self._page_size}&order=desc"
        )

    async def fetch_page(self, cursor: str | None = None) -> LedgerPage:
        url = self._page_url(cursor)
        attempts = self._read_retries + 1
        last_exc = None
        for attempt in range(attempts):
            try:
                resp = await self._http.get(url, headers={"Accept": "application/json"})
                resp.raise_for_status()
                data = resp.json()
                if not isinstance(data, dict):
                    raise ValueError("unexpected page shape")
                break
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                log.warning(
                    "Ledger page fetch failed (attempt %d/%d): %s",
                    attempt + 1, attempts, exc,
                )
                if attempt < attempts - 1:
                    await asyncio.sleep(self._retry_base_delay * (2 ** attempt))
        else:
            raise LedgerUnavailable(f"Ledger read failed: {last_exc}") from last_exc

        messages = [
            m.get("message")
            for m in data.get("messages") or []
            if isinstance(m, dict) and isinstance(m.get("message"), str)
        ]
        next_cursor = (data.get("links") or {}).get("next")
        return LedgerPage(messages, next_cursor or None)
