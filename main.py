"""Main entry point for running the FastAPI server."""

import uvicorn

from docexpress.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "docexpress.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
    )
