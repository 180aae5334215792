"""
Material Preview Compositor - Backend API
Main FastAPI application entry point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from . import __version__
from .api.routes import router, shutdown_runner
from .config import get_settings
from .logger import ensure_logging

ensure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("[OK] Compositor API started")
    yield
    await shutdown_runner()


app = FastAPI(
    title="Material Preview Compositor",
    description="Preview real materials inside a region of a photo, matched to the scene's lighting",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    return {
        "message": "Material Preview Compositor API",
        "docs": "/docs",
        "version": __version__,
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("photoblend.main:app", host="0.0.0.0", port=8000, reload=False)
