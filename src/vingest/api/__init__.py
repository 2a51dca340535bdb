"""HTTP surface for triggering ingestion and inspecting worker state."""

from vingest.api.app import create_app

__all__ = ["create_app"]
