"""
WebDriver Bridge MCP

Talks to WebDriver remote ends that speak either the legacy JSON Wire
Protocol or the W3C WebDriver protocol, and exposes them as MCP tools.
"""

__version__ = "0.1.0"
