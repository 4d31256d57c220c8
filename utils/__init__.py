"""Utility modules for the batch translator.

This package provides logging configuration and string helpers shared by all components.
"""

from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

__all__: list[str] = ["LoggerUtils", "StringUtils"]
