"""ASGI entrypoint for the content engine API."""

from content_engine.api.app import create_app
from content_engine.containers import build_container

app = create_app(build_container())
