"""Tooling API access through the sf CLI."""

from apexcompile.tooling.client import ToolingClient
from apexcompile.tooling.response import ResponseKind, ToolingResponse, parse_response

__all__ = ["ToolingClient", "ToolingResponse", "ResponseKind", "parse_response"]
