from __future__ import annotations

from fastapi import APIRouter

from casebrief.config import settings
from casebrief.version import APP_VERSION


router = APIRouter()


@router.get("/")
def root() -> dict[str, str]:
    return {"service": "casebrief-backend", "status": "running"}


@router.get("/health")
def health() -> dict[str, str]:
    return {
        "status": "ok",
        "environment": settings.app_env,
        "version": APP_VERSION,
        "storage_backend": settings.storage_backend,
    }
