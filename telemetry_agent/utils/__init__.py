"""工具模块"""

from .exceptions import (
    ErrorCode, TelemetryError, ConfigError, InvalidInterfaceError, ProbeError,
    CollectorError, CommandError
)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'ErrorCode', 'TelemetryError', 'ConfigError', 'InvalidInterfaceError', 'ProbeError',
    'CollectorError', 'CommandError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
