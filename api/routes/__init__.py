"""API route definitions and exports."""
from api.routes import stream, system, videos

__all__ = ["stream", "system", "videos"]
