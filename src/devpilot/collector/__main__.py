"""CLI 入口模块 -- python -m devpilot.collector

持续模式下 SIGINT / SIGTERM 触发优雅停止：取消定时、等待进行中的 poll、关闭账本。
"""

import argparse
import asyncio
import contextlib
import signal

import structlog

from devpilot.ingestor.exceptions import LedgerUnavailableError

from .config import CollectorConfig, load_collector_config
from .logging_config import LOG_FORMATS, setup_logging
from .loop import run_collect

log = structlog.get_logger()


def _request_stop(stop_event: asyncio.Event, sig: signal.Signals) -> None:
    log.info("collector_signal_received", signal=sig.name)
    stop_event.set()


async def _serve(config: CollectorConfig, once: bool) -> None:
    if once:
        await run_collect(config, once=True)
        return

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows 事件循环不支持 add_signal_handler
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _request_stop, stop_event, sig)

    await run_collect(config, stop_event=stop_event)


def main(argv: list[str] | None = None) -> int:
    """CLI 主入口"""
    parser = argparse.ArgumentParser(
        prog="devpilot-collect",
        description="增量采集工作区日志、提交与任务到事件账本",
    )
    parser.add_argument("--workspace", default=None, help="工作区根目录（默认当前目录）")
    parser.add_argument("--interval", type=float, default=None, help="轮询间隔（秒）")
    parser.add_argument("--once", action="store_true", help="执行一轮后退出")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None, help="日志输出格式")
    parser.add_argument("--log-level", default=None, help="日志级别（如 DEBUG / INFO）")
    args = parser.parse_args(argv)

    setup_logging(args.log_format, args.log_level)
    config = load_collector_config(args.workspace, args.interval)

    try:
        asyncio.run(_serve(config, args.once))
    except LedgerUnavailableError as exc:
        log.error("ledger_unavailable", db_path=exc.db_path, error=str(exc.original_error))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
