"""Application wiring and the HTTP surface."""

from briefly.app.bootstrap import Runtime, build_runtime
from briefly.app.server import create_app

__all__ = ["Runtime", "build_runtime", "create_app"]
