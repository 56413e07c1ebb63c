from fastapi import APIRouter

from pdf_gateway.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe; does not touch the object store."""
    return HealthResponse()
