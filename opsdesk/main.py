"""
FastAPI Production Application

Main entry point for the OpsDesk API.
"""

from opsdesk.config import get_settings
from opsdesk.serving.api import create_api_app

settings = get_settings()

app = create_api_app(settings)


def run() -> None:
    """Serve the API with uvicorn using configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
