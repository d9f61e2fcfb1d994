"""Admin API routes -- on-demand resync of the local cache."""
import asyncio

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from typeboard.config import LeaderboardMode
from typeboard.domain.errors import LedgerUnavailable
from typeboard.infrastructure.auth.dependencies import require_admin

router = APIRouter(prefix="/api/admin", tags=["admin"])

_sync_service = None
_repository = None
_mode = LeaderboardMode.CACHED


def init_admin_routes(sync_service, repository, mode=LeaderboardMode.CACHED):
    global _sync_service, _repository, _mode
    _sync_service = sync_service
    _repository = repository
    _mode = LeaderboardMode(mode)


@router.post("/sync", dependencies=[Depends(require_admin)])
async def api_sync():
    """Rebuild the cache from the ledger. 503 (cache untouched) if the ledger is down."""
    try:
        report = await _sync_service.rebuild()
    except LedgerUnavailable as exc:
        return JSONResponse(status_code=503, content={"error": str(exc)})
    return report.to_dict()


@router.get("/cache", dependencies=[Depends(require_admin)])
async def api_cache_status():
    """Where the cache lives and how many entries it holds."""
    return {
        "mode": _mode.value,
        "path": _repository.data_path,
        "entries": len(await asyncio.to_thread(_repository.load)),
    }
