"""Tool factories."""

from briefly.tools.factories.clock import create_clock_tool
from briefly.tools.factories.image import create_image_tool
from briefly.tools.factories.memory import create_memory_save_tool
from briefly.tools.factories.web import WebFetcher, create_web_fetch_tool

__all__ = [
    "WebFetcher",
    "create_clock_tool",
    "create_image_tool",
    "create_memory_save_tool",
    "create_web_fetch_tool",
]
