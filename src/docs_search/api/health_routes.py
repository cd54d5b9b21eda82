from fastapi import APIRouter
from ..config import settings

router = APIRouter(tags=["health"])

@router.get("/health")
def health():
    base = str(settings.docs_base_url) if settings.docs_base_url else None
    return {"status": "ok", "docs_base_url": base}
