"""外部命令执行工具

所有外部命令都以参数列表方式执行，不经过shell，避免命令注入。
"""

import asyncio
from typing import Sequence

from .exceptions import CommandError, ErrorCode
from .log_manager import get_logger

logger = get_logger('command')

DEFAULT_COMMAND_TIMEOUT = 5.0


async def run_command(args: Sequence[str], timeout: float = DEFAULT_COMMAND_TIMEOUT) -> str:
    """
    执行外部命令并返回标准输出

    Args:
        args: 命令及参数列表
        timeout: 超时时间（秒）

    Returns:
        str: 标准输出文本

    Raises:
        CommandError: 命令不存在、超时或以非零状态退出
    """
    command = ' '.join(args)
    logger.debug(f"执行命令: {command}")

    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL
        )
    except FileNotFoundError as e:
        raise CommandError(f"命令不存在: {args[0]}", ErrorCode.COMMAND_NOT_FOUND,
                           command=command, cause=e)
    except PermissionError as e:
        raise CommandError(f"没有权限执行命令: {args[0]}", ErrorCode.COMMAND_FAILED,
                           command=command, cause=e)

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandError(f"命令执行超时 ({timeout}秒): {command}", ErrorCode.COMMAND_TIMEOUT,
                           command=command)
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    if process.returncode != 0:
        message = stderr.decode('utf-8', errors='replace').strip()
        raise CommandError(f"命令执行失败: {command}: {message}", ErrorCode.COMMAND_FAILED,
                           command=command, returncode=process.returncode)

    return stdout.decode('utf-8', errors='replace')


async def run_first_available(*commands: Sequence[str],
                              timeout: float = DEFAULT_COMMAND_TIMEOUT) -> str:
    """
    依次尝试多个命令，返回第一个成功命令的输出

    Args:
        commands: 候选命令列表
        timeout: 每个命令的超时时间（秒）

    Returns:
        str: 第一个成功命令的标准输出

    Raises:
        CommandError: 所有命令均失败时抛出最后一个错误
    """
    last_error = None
    for args in commands:
        try:
            return await run_command(args, timeout=timeout)
        except CommandError as e:
            logger.debug(f"命令失败，尝试下一个: {e.format_error()}")
            last_error = e

    if last_error is None:
        raise CommandError("没有可执行的命令", ErrorCode.COMMAND_NOT_FOUND)
    raise last_error
