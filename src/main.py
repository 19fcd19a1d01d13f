"""Main FastAPI application entry point."""

import logging
from core.config import get_settings
from core.app import create_app

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format=settings.LOG_FORMAT,
)

app = create_app()

def main():
    """CLI entry point for running the server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
