"""ASGI entry point: ``uvicorn manymarkets.main:app``."""

from .api.app import create_app

app = create_app()
