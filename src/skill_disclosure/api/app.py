"""FastAPI application factory."""

from datetime import datetime, timezone

from fastapi import Depends, FastAPI

from skill_disclosure import __version__
from skill_disclosure.api.dependencies import get_config, get_registry_handle
from skill_disclosure.api.middleware import register_exception_handlers
from skill_disclosure.api.routers import disclosure, skills
from skill_disclosure.core.config import Config, load_environment
from skill_disclosure.skills.disclosure.registry import RegistryHandle

# Load environment variables; variables exported by the CLI take precedence over .env
load_environment(override=False)


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Skill Disclosure API",
        description="Progressive skill disclosure: match skills to a task and load them under a budget",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Register exception handlers
    register_exception_handlers(app)

    # Register routers with /api/v1 prefix
    app.include_router(skills.router, prefix="/api/v1")
    app.include_router(disclosure.router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health")
    def health_check():
        """Health check endpoint.

        Returns:
            Health status
        """
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # Detailed status endpoint
    @app.get("/api/v1/status")
    def get_status(
        config: Config = Depends(get_config),
        handle: RegistryHandle = Depends(get_registry_handle),
    ):
        """Get API status including the active registry snapshot.

        Returns:
            Detailed status information
        """
        registry = handle.snapshot

        return {
            "api_version": "v1",
            "skills_dir": str(config.skills_path),
            "skills_loaded": len(registry),
            "skills_rejected": len(registry.errors),
            "generation": handle.generation,
            "default_budget": config.budget,
        }

    return app


# Create app instance for uvicorn
app = create_app()
