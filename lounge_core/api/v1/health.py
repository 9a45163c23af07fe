from fastapi import APIRouter, Request

from lounge_core.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(ok=True)


@router.get("/health/circuit-breakers")
def circuit_breaker_health(request: Request):
    client = getattr(request.app.state, "power_client", None)
    return {
        "circuit_breakers": client.get_circuit_breaker_stats() if client else {},
        "status": "ok",
    }
