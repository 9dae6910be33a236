"""Tools package for Briefly."""

from briefly.tools.base import context_owner, run_context, run_tool
from briefly.tools.builtin import register_builtin_tools
from briefly.tools.registry import ToolDescriptor, ToolRegistry

__all__ = [
    "ToolDescriptor",
    "ToolRegistry",
    "context_owner",
    "register_builtin_tools",
    "run_context",
    "run_tool",
]
