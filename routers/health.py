from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness probe kept at the root path for existing health checks."""
    return "Server is running"


@health_router.get("/health")
async def health_check(request: Request):
    gateway = request.app.state.gateway
    return {
        "status": "healthy",
        "active_rooms": len(gateway.directory.rooms()),
        "generation_configured": gateway.pipeline.generator.configured,
    }
