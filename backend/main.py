"""
CartCare API entry point.

    uvicorn main:app --app-dir backend
"""

from core.app import create_app
from core.config import settings

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
