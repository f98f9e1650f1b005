"""采集器日志配置

dev 模式：pretty print 可读输出（前台运行 / 调试）
json 模式：结构化 JSON 输出（作为守护进程长期运行）
"""

import logging
import os

import structlog

LOG_FORMATS = ("dev", "json")

# 采集器每轮都会大量访问账本，这些第三方 logger 在 DEBUG 下过于嘈杂
_NOISY_LOGGERS = ("aiosqlite", "asyncio")


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 配置

    Args:
        log_format: "dev" 或 "json"，缺省读取 DEVPILOT_LOG_FORMAT（默认 "dev"）
        log_level: 日志级别名称，缺省读取 DEVPILOT_LOG_LEVEL（默认 "INFO"）
    """
    log_format = log_format or os.environ.get("DEVPILOT_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("DEVPILOT_LOG_LEVEL", "INFO")
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        # JSON 输出中的异常以结构化字段呈现
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
        shared_processors.append(structlog.processors.dict_tracebacks)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
