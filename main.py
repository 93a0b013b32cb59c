from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List
import logging

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.api.search_routes import router as search_router
from app.api.results_routes import router as results_router
from app.api.user_routes import router as user_router
from app.api.monitor_routes import router as monitor_router
from app.middleware.frontend_headers import FrontendHeadersMiddleware
from app.database import init_database, close_database, create_tables
from app.services.supabase_auth_service import supabase_auth_service as auth_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME}...")

    await init_database()
    await create_tables()
    logger.info("Database ready")

    auth_init_success = auth_service.initialize()
    logger.info(f"Auth service initialized: {auth_init_success}")

    yield

    # Shutdown
    await close_database()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description="Social media content discovery with engagement ranking and monthly search quotas",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    logger.error(f"VALIDATION ERROR on {request.url}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())}
    )


def get_allowed_origins() -> List[str]:
    origins = [origin.strip() for origin in settings.FRONTEND_URL.split(",") if origin.strip()]
    if settings.DEBUG:
        origins += ["http://localhost:3000", "http://127.0.0.1:3000"]
    return origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"]
)

app.add_middleware(FrontendHeadersMiddleware)

app.include_router(search_router, prefix="/api/v1")
app.include_router(results_router, prefix="/api/v1")
app.include_router(user_router, prefix="/api/v1")
app.include_router(monitor_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME}", "status": "running"}


@app.get("/health")
async def health_check():
    """Liveness check"""
    return {"status": "ok", "service": settings.APP_NAME, "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
