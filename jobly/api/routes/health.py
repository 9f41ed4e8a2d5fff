from fastapi import APIRouter, Depends, HTTPException, status

from jobly.core.config import Settings, get_settings
from jobly.services.repository import RepositoryUnavailableError, get_repository

router = APIRouter()


@router.get("/")
async def root(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name}


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(repository=Depends(get_repository)) -> dict[str, str]:
    try:
        await repository.ping()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {"status": "ready"}
