"""
日志配置模块
"""
import sys
from pathlib import Path
from loguru import logger
from .config import settings

_configured = False


def setup_logger(force: bool = False):
    """配置日志系统

    重复调用时直接返回已配置的 logger，force=True 时按当前 settings 重建处理器。
    """
    global _configured
    if _configured and not force:
        return logger

    # 移除默认处理器
    logger.remove()

    # 控制台输出（stderr，避免与报告输出混在一起）
    if settings.log_console_enabled:
        logger.add(
            sys.stderr,
            level=settings.log_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[module]}</cyan> - <level>{message}</level>",
        )

    if settings.log_file_enabled:
        # 创建日志目录
        log_dir = Path(settings.log_path)
        log_dir.mkdir(parents=True, exist_ok=True)

        # 文件输出 - 全局日志
        logger.add(
            log_dir / "screenpilot_{time:YYYY-MM-DD}.log",
            level=settings.log_level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]} | {name}:{function}:{line} - {message}",
            rotation="00:00",  # 每天午夜轮转
            retention=f"{settings.log_retention_days} days",
            encoding="utf-8",
        )

        # 错误日志单独记录
        logger.add(
            log_dir / "error_{time:YYYY-MM-DD}.log",
            level="ERROR",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]} | {name}:{function}:{line} - {message}",
            rotation="00:00",
            retention=f"{settings.log_retention_days * 2} days",
            encoding="utf-8",
        )

    # 未 bind module 的记录使用默认值
    logger.configure(extra={"module": "screenpilot"})
    _configured = True
    return logger


# 初始化日志系统
logger = setup_logger()
