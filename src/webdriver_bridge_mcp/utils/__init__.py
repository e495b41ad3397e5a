"""Utility modules for webdriver-bridge-mcp"""

from .logging_config import get_logger, log_dict, log_tool_result, redact, setup_file_logging

__all__ = ["get_logger", "log_dict", "log_tool_result", "redact", "setup_file_logging"]
