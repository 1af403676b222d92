from dotenv import load_dotenv
load_dotenv()

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from routes import register, health, send
from store import SessionRegistry
from whatsapp.errors import MissingFieldsError

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

PUBLIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "public")


def create_app(registry: Optional[SessionRegistry] = None) -> FastAPI:
    """Build the app. Tests pass their own registry (with a fake client factory)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.registry = registry if registry is not None else SessionRegistry()
        yield
        logger.info("Shutting down, closing %d session(s)", len(app.state.registry))
        await app.state.registry.close()

    app = FastAPI(title="WhatsApp Gateway API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(register.router)
    app.include_router(health.router)
    app.include_router(send.router)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request, exc):
        """Every JSON error goes out as {"error": <message>}."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request, exc):
        """Unparseable input is a missing-fields error, not FastAPI's default 422."""
        logger.warning("Rejected request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": str(MissingFieldsError())})

    @app.get("/", include_in_schema=False)
    def index():
        return FileResponse(os.path.join(PUBLIC_DIR, "register.html"))

    # Anything else under public/ (mounted last so API routes win)
    app.mount("/", StaticFiles(directory=PUBLIC_DIR), name="public")

    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "3000"))
    logger.info(f"Server running at http://localhost:{port}")
    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=port)
