from functools import lru_cache
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, get_settings, settings
from logging_setup import configure_logging
from schemas import SearchRequest, SearchResponse
from service import ProviderSearchService

configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
logger = structlog.get_logger(__name__)

app = FastAPI(title="Provider Locator API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_search_service() -> ProviderSearchService:
    return ProviderSearchService.from_settings(get_settings())


def require_caller(
    authorization: Optional[str] = Header(default=None),
    cfg: Settings = Depends(get_settings),
) -> Optional[str]:
    """Identity is verified upstream; this only refuses anonymous calls."""
    if cfg.AUTH_REQUIRED and not (authorization or "").strip():
        raise HTTPException(status_code=401, detail="User must be authenticated")
    return authorization


# ============ API ENDPOINTS ============

@app.post("/search/providers", response_model=SearchResponse)
async def search_providers(
    req: SearchRequest,
    _caller: Optional[str] = Depends(require_caller),
    service: ProviderSearchService = Depends(get_search_service),
):
    """Search Medicaid (and, when needed, the NPI registry) and return enriched providers."""
    try:
        return await service.search(req)
    except Exception as e:
        logger.exception("Provider search failed", zip=req.zip, city=req.city)
        raise HTTPException(status_code=500, detail="Provider search failed") from e


@app.get("/health")
def health_check(cfg: Settings = Depends(get_settings)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "store_backend": cfg.STORE_BACKEND,
        "medicaid_url": cfg.MEDICAID_BASE_URL,
        "npi_url": cfg.NPI_BASE_URL,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
