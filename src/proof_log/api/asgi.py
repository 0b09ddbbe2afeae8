"""ASGI entrypoint for the proof log API."""

from proof_log.api.app import create_app
from proof_log.containers import build_container

app = create_app(build_container())
