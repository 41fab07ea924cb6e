"""主机路径解析

在容器中运行时主机的 /proc、/sys 挂载在 host_root 下（例如 /host/proc），
直接在主机上运行时使用原路径。
"""

from pathlib import Path
from typing import Optional

DEFAULT_HOST_ROOT = '/host'


def resolve_host_path(path: str, host_root: Optional[str] = DEFAULT_HOST_ROOT) -> Path:
    """
    解析主机路径，host_root 下存在对应路径时优先使用

    Args:
        path: 主机上的绝对路径，例如 /proc
        host_root: 主机根目录挂载点，为空时直接返回原路径

    Returns:
        Path: 实际可读的路径
    """
    if host_root:
        mounted = Path(host_root) / path.lstrip('/')
        if mounted.exists():
            return mounted
    return Path(path)
