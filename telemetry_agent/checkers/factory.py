"""服务探测器工厂"""

from typing import Dict, Type, Any, Optional

from .base import BaseServiceChecker
from ..models.telemetry import CheckType, ServiceDescriptor
from ..utils.exceptions import ProbeError, ErrorCode

# 未注册的探测类型统一退回到TCP探测
FALLBACK_CHECK_TYPE = CheckType.TCP


class ServiceCheckerFactory:
    """服务探测器工厂类，按探测类型创建探测器"""

    def __init__(self):
        """初始化工厂"""
        self._checkers: Dict[CheckType, Type[BaseServiceChecker]] = {}

    def register_checker(self, check_type: CheckType,
                         checker_class: Type[BaseServiceChecker]):
        """
        注册探测器类

        Args:
            check_type: 探测类型
            checker_class: 探测器类

        Raises:
            ProbeError: 注册失败
        """
        if not issubclass(checker_class, BaseServiceChecker):
            raise ProbeError(f"探测器类 {checker_class.__name__} 必须继承自 BaseServiceChecker",
                             ErrorCode.PROBE_INITIALIZATION_ERROR)

        if check_type in self._checkers:
            raise ProbeError(f"探测类型 '{check_type.value}' 已经注册了探测器",
                             ErrorCode.PROBE_INITIALIZATION_ERROR)

        self._checkers[check_type] = checker_class

    def unregister_checker(self, check_type: CheckType):
        """
        取消注册探测器类

        Args:
            check_type: 探测类型
        """
        self._checkers.pop(check_type, None)

    def create_checker(self, descriptor: ServiceDescriptor,
                       config: Optional[Dict[str, Any]] = None) -> BaseServiceChecker:
        """
        创建探测器实例

        Args:
            descriptor: 服务描述
            config: 探测参数

        Returns:
            BaseServiceChecker: 探测器实例

        Raises:
            ProbeError: 连回退类型都没有注册
        """
        checker_class = self._checkers.get(descriptor.check_type)
        if checker_class is None:
            checker_class = self._checkers.get(FALLBACK_CHECK_TYPE)
        if checker_class is None:
            raise ProbeError(f"不支持的探测类型: '{descriptor.check_type.value}'",
                             ErrorCode.PROBE_INITIALIZATION_ERROR,
                             service_name=descriptor.name,
                             check_type=descriptor.check_type.value)

        return checker_class(descriptor, config)

    def get_supported_types(self) -> list:
        """
        获取支持的探测类型列表

        Returns:
            list: 探测类型值列表
        """
        return [check_type.value for check_type in self._checkers]

    def is_type_supported(self, check_type: CheckType) -> bool:
        return check_type in self._checkers


# 全局工厂实例
service_checker_factory = ServiceCheckerFactory()


def register_checker(check_type: CheckType):
    """
    装饰器：注册探测器类

    Args:
        check_type: 探测类型

    Returns:
        装饰器函数
    """
    def decorator(checker_class: Type[BaseServiceChecker]):
        checker_class.check_type = check_type.value
        service_checker_factory.register_checker(check_type, checker_class)
        return checker_class

    return decorator
