# fleetops/common/__init__.py
"""
Общие утилиты, константы и логгер.
"""

from fleetops.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from fleetops.common.constants import TypeMsg

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
]
