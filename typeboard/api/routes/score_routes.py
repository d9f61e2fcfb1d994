"""Score API routes -- list, submit, authoritative rank."""
import asyncio
from typing import Any, List

from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from typeboard.config import LeaderboardMode
from typeboard.domain.ranking import sort_scores, top

router = APIRouter(prefix="/api", tags=["scores"])

CORS_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class ScoresPreflightMiddleware(BaseHTTPMiddleware):
    """
    Answer browser preflights for /api/scores with 204, as the game client
    expects. Origins outside ``allowed_origins`` fall through to
    CORSMiddleware, which rejects them.
    """

    def __init__(self, app, allowed_origins=("*",)):
        super().__init__(app)
        self._allowed = list(allowed_origins)

    async def dispatch(self, request: Request, call_next):
        if request.method != "OPTIONS" or request.url.path.rstrip("/") != "/api/scores":
            return await call_next(request)
        origin = request.headers.get("origin")
        if origin is None or "*" in self._allowed:
            return Response(status_code=204, headers=CORS_PREFLIGHT_HEADERS)
        if origin in self._allowed:
            headers = dict(CORS_PREFLIGHT_HEADERS)
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
            return Response(status_code=204, headers=headers)
        return await call_next(request)


class ScoreEntry(BaseModel):
    name: str
    wpm: int
    mistakes: int
    cpm: int


class RankResponse(BaseModel):
    rank: int
    total_entries: int
    provisional: bool


class SubmitScoreResponse(RankResponse):
    ok: bool = True
    success: bool = True


_coordinator = None
_repository = None
_reader = None
_response_limit = 1000


def init_routes(coordinator, repository, reader, response_limit: int = 1000):
    global _coordinator, _repository, _reader, _response_limit
    _coordinator = coordinator
    _repository = repository
    _reader = reader
    _response_limit = response_limit


@router.get("/scores", response_model=List[ScoreEntry])
async def api_get_scores(limit: int | None = Query(None, ge=1)):
    """Leaderboard in canonical order. Public."""
    cap = _response_limit if limit is None else min(limit, _response_limit)
    if _coordinator.mode is LeaderboardMode.CACHED:
        snapshot = await asyncio.to_thread(_repository.load)
    else:
        # partial or empty on ledger trouble, never an error
        snapshot = sort_scores(await _reader.fetch_all())
    return [record.to_dict() for record in top(snapshot, cap)]


@router.post("/scores", status_code=201, response_model=SubmitScoreResponse)
async def api_submit_score(payload: Any = Body(None)):
    """Write a score to the ledger and return its provisional rank."""
    result = await _coordinator.submit(payload)
    return {"ok": True, "success": True, **result.to_dict()}


@router.post("/scores/rank", response_model=RankResponse)
async def api_authoritative_rank(payload: Any = Body(None)):
    """Rank a candidate against a full ledger scan. Nothing is written."""
    result = await _coordinator.authoritative_rank(payload)
    return result.to_dict()
