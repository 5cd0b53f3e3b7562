"""
Utility modules
"""
from .unified_logger import UnifiedLogger, LogLevel, LogType, get_logger, setup_cli_logger

__all__ = [
    'UnifiedLogger',
    'LogLevel',
    'LogType',
    'get_logger',
    'setup_cli_logger'
]
