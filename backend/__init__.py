"""Backend package exposing the FastAPI movements application."""

import os

if os.getenv("SKIP_BACKEND_APP"):
    app = None
else:
    from .main import app

__all__ = ["app"]
