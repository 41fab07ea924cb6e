"""自定义异常类和错误处理系统"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000
    INITIALIZATION_ERROR = 1001
    VALIDATION_ERROR = 1002

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002
    INVALID_INTERFACE_NAME = 2003

    # 探测错误 (3000-3999)
    PROBE_INITIALIZATION_ERROR = 3000
    CONNECTION_ERROR = 3001
    TIMEOUT_ERROR = 3002
    INVALID_RESPONSE = 3003

    # 采集错误 (4000-4999)
    COLLECTOR_ERROR = 4000
    SOURCE_UNREADABLE = 4001
    DOCKER_API_ERROR = 4002

    # 外部命令错误 (5000-5999)
    COMMAND_NOT_FOUND = 5000
    COMMAND_FAILED = 5001
    COMMAND_TIMEOUT = 5002


class TelemetryError(Exception):
    """遥测系统基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {str(self.cause)})"
        return error_msg


class ConfigError(TelemetryError):
    """配置相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        super().__init__(message, error_code, details, **kwargs)


class InvalidInterfaceError(ConfigError):
    """网络接口名称不合法（拒绝执行外部命令）"""

    def __init__(self, interface_name: str, **kwargs):
        super().__init__(
            f"网络接口名称不合法: {interface_name!r}",
            ErrorCode.INVALID_INTERFACE_NAME,
            details={'interface_name': interface_name},
            recoverable=False,
            **kwargs
        )
        self.interface_name = interface_name


class ProbeError(TelemetryError):
    """服务探测相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
        service_name: Optional[str] = None,
        check_type: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if service_name:
            details['service_name'] = service_name
        if check_type:
            details['check_type'] = check_type
        super().__init__(message, error_code, details, **kwargs)


class CollectorError(TelemetryError):
    """数据采集相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.COLLECTOR_ERROR,
        source: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if source:
            details['source'] = source
        super().__init__(message, error_code, details, **kwargs)


class CommandError(TelemetryError):
    """外部命令执行异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.COMMAND_FAILED,
        command: Optional[str] = None,
        returncode: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if command:
            details['command'] = command
        if returncode is not None:
            details['returncode'] = returncode
        super().__init__(message, error_code, details, **kwargs)
        self.returncode = returncode
