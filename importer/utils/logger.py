"""日志工具"""
import logging
from typing import Optional

from ..config import Config

_logger_initialized = False

def setup_logger(name: str = 'importer',
                 level: Optional[str] = None,
                 log_file: Optional[str] = None,
                 force: bool = False) -> logging.Logger:
    """配置日志记录器（force=True 时替换已有处理器）"""
    global _logger_initialized

    logger = logging.getLogger(name)

    if _logger_initialized and not force:
        return logger

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level = level or Config.LOG_LEVEL
    log_file = log_file or Config.LOG_FILE

    logger.setLevel(getattr(logging, level.upper()))

    formatter = logging.Formatter(Config.LOG_FORMAT)

    # 控制台处理器
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 文件处理器
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _logger_initialized = True
    return logger

def get_logger(name: str = 'importer') -> logging.Logger:
    """获取日志记录器"""
    return logging.getLogger(name)
