# triage_study/main.py
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.endpoints import chat, contact, experiment, export, knowledge, survey, trace_data
from .config import configure_logging, get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Triage Study Backend", version=__version__)

    # CORS for the participant frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(trace_data.router)
    app.include_router(survey.router)
    app.include_router(contact.router)
    app.include_router(export.router)
    app.include_router(chat.router)
    app.include_router(knowledge.router)
    app.include_router(experiment.router)

    @app.get("/")
    async def root():
        return {"message": "Triage Study Backend API", "version": __version__}

    @app.get("/health")
    async def health():
        return {"status": "healthy", "service": "triage-study"}

    return app


app = create_app()


def main() -> None:
    """Console entry point: serves the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "triage_study.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=get_settings().LOG_LEVEL.lower(),
    )
