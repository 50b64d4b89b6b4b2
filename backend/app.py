"""
Furnace ETA Backend Application

FastAPI application serving furnace predictions and runtime statistics
to the dashboard.
"""

import os
import sys
import traceback
from contextlib import asynccontextmanager

import log_config  # noqa: F401
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Import API router
from api import HOME, VERSION, telemetry_service
from api import router as api_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan manager for startup/shutdown."""
    # Startup
    logger.info(f"Furnace ETA starting for home '{HOME.name}'")

    routes = [
        f"{getattr(route, 'path', '?')} - {getattr(route, 'methods', ['MOUNT'])}"
        for route in app.routes
    ]
    logger.info(f"Registered routes: {routes}")

    await telemetry_service.start()

    yield

    # Shutdown
    logger.info("Furnace ETA shutting down")
    await telemetry_service.stop()


# Create FastAPI application
app = FastAPI(
    title="Furnace ETA API",
    description="Predicts when the furnace turns on and when the house reaches its setpoint",
    version=VERSION,
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions gracefully."""
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    logger.error(f"Unhandled exception: {exc}")
    logger.error(f"Request path: {request.url.path}")
    logger.error(f"Stack trace:\n{tb_str}")

    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "message": "Internal server error",
        },
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)

# Mount static files (dashboard build output, if present)
static_dir = os.path.join(os.path.dirname(__file__), "static")
if os.path.exists(static_dir):
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    logger.info(f"Mounted static files from {static_dir}")


@app.get("/")
async def root(request: Request):
    """Root endpoint - serve the dashboard with proper base path."""
    index_path = os.path.join(static_dir, "index.html")
    if not os.path.exists(index_path):
        return JSONResponse({"app": "Furnace ETA", "version": VERSION, "docs": "/docs"})

    # Get ingress path from Home Assistant header
    ingress_path = request.headers.get("X-Ingress-Path", "")

    with open(index_path) as f:
        html_content = f.read()

    # Inject base tag if ingress path exists
    if ingress_path:
        base_tag = f'<base href="{ingress_path}/">'
        html_content = html_content.replace('<head>', f'<head>\n    {base_tag}')
        logger.info(f"Injected base tag: {base_tag}")

    return HTMLResponse(content=html_content)


# For development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
