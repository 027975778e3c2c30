"""Main entry point for running the FastAPI application with auto-reload."""
import uvicorn

from tourdesk.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.app_name} v{settings.version}")
    print(f"Debug mode: {settings.debug}")
    if settings.remote.configured:
        print(f"Database: {settings.remote.url.split('@')[-1]} (remote, falls back to local)")
    else:
        print(f"Database: {settings.local.path} (local)")
    print(f"Auto-reload: {'Enabled' if settings.debug else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "tourdesk.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        reload_dirs=["tourdesk", "config"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
