# =======================================================================================
# gatekeeper/main.py - FastAPI Application Entry Point
# =======================================================================================
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from .config import config
from .api.routes.visitors import router as visitors_router
from .api.routes.grants import router as grants_router
from .api.routes.access import router as access_router
from .api.routes.staff import router as staff_router
from .database import db_manager
from .logging_setup import configure_logging
from .models.schemas import HealthResponse
from .utils.exceptions import GatekeepingError
from .workers.notification_worker import start_notification_worker, stop_notification_worker


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Gatekeeper API",
        version="1.0.0",
        description="Visitor check-in, approvals and access logging for gated communities",
        debug=config.API_DEBUG,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(visitors_router, prefix="/api", tags=["visitors"])
    app.include_router(grants_router, prefix="/api", tags=["frequent-visitors"])
    app.include_router(access_router, prefix="/api", tags=["access"])
    app.include_router(staff_router, prefix="/api", tags=["staff"])

    @app.exception_handler(GatekeepingError)
    async def gatekeeping_error_handler(request: Request, exc: GatekeepingError):
        logger.info("[api] {} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def api_health():
        try:
            db_manager.fetch_one("SELECT 1")
            return HealthResponse(status="ok", dataAvailable=True, message=None)
        except Exception as e:
            logger.error("[api] health check failed: {}", e)
            return HealthResponse(status="error", dataAvailable=False, message=str(e))

    @app.on_event("startup")
    async def startup_event():
        if config.DB_AUTO_CREATE:
            db_manager.create_schema()
        start_notification_worker()
        logger.info("Gatekeeper API started (gate: {})", config.DEFAULT_GATE)

    @app.on_event("shutdown")
    async def shutdown_event():
        stop_notification_worker()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("gatekeeper.main:app", host=config.API_HOST, port=config.API_PORT, reload=config.API_DEBUG)
