"""Collector Loop -- 单轮 poll 编排与定时调度

一轮 poll：tail 日志 -> 采集提交 -> 读取任务清单 -> ingest -> 保存游标。
游标作为显式值传入 run_poll 并返回下一版本；只有整轮成功才会保存，
失败时下一轮从上次成功保存的游标重试。

调度器在任一时刻最多运行一个 poll：轮询请求遇到进行中的 poll 直接丢弃。
停止信号（asyncio.Event）到达后取消定时、等待进行中的 poll 完成，再关闭账本。
"""

import asyncio
from datetime import datetime

import structlog
from pydantic import BaseModel

from devpilot.ingestor import Ingestor
from devpilot.ingestor.config import EPOCH_ISO
from devpilot.ingestor.models.ingest import IngestOptions
from devpilot.ingestor.timeutil import to_iso, utc_now

from .commits import collect_commit_diffs
from .config import CollectorConfig
from .cursor import CollectorCursor, CursorStore, FileCursorStore
from .tailer import tail_logs
from .tasks import load_task_seeds

log = structlog.get_logger()


class PollOutcome(BaseModel):
    """一轮 poll 的结果"""

    cursor: CollectorCursor
    since: str
    log_count: int
    diff_count: int
    task_count: int
    event_count: int


async def run_poll(
    cursor: CollectorCursor,
    config: CollectorConfig,
    ingestor: Ingestor,
    now: datetime | None = None,
) -> PollOutcome:
    """执行一轮采集并返回下一版本游标（不持久化）

    Raises:
        Exception: ingest 等步骤的意外失败，由调用方在 poll 边界处理
    """
    captured_at = now or utc_now()
    since = cursor.last_poll_iso or EPOCH_ISO

    tail = tail_logs(
        config.workspace_dir,
        config.vk_dir,
        cursor.log_offsets,
        captured_at,
        extension=config.log_extension,
    )
    commits = await collect_commit_diffs(
        config.workspace_dir,
        since,
        cursor.processed_commits,
        captured_at,
        max_processed=config.max_processed_commits,
    )
    tasks = load_task_seeds(config.tasks_file)

    result = await ingestor.ingest(
        IngestOptions(
            since=since,
            vk_logs=tail.logs,
            git_diffs=commits.diffs,
            tasks=tasks,
        )
    )

    next_cursor = CollectorCursor(
        last_poll_iso=to_iso(captured_at),
        log_offsets=tail.offsets,
        processed_commits=commits.processed_commits,
    )
    return PollOutcome(
        cursor=next_cursor,
        since=since,
        log_count=len(tail.logs),
        diff_count=len(commits.diffs),
        task_count=len(result.tasks),
        event_count=len(result.events),
    )


class Collector:
    """单工作区采集器：账本与游标的唯一写入者"""

    def __init__(
        self,
        config: CollectorConfig,
        ingestor: Ingestor,
        cursor_store: CursorStore,
    ) -> None:
        self._config = config
        self._ingestor = ingestor
        self._cursor_store = cursor_store
        self._in_flight: asyncio.Task[PollOutcome | None] | None = None
        self._closed = False

    @property
    def polling(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    async def poll(self) -> PollOutcome | None:
        """读取游标 -> 执行一轮 -> 保存游标；失败时记录日志并返回 None"""
        try:
            cursor = self._cursor_store.load()
            outcome = await run_poll(cursor, self._config, self._ingestor)
            self._cursor_store.save(outcome.cursor)
        except Exception:
            log.exception(
                "collector_poll_failed",
                workspace=str(self._config.workspace_dir),
            )
            return None

        log.info(
            "collector_poll_completed",
            events=outcome.event_count,
            logs=outcome.log_count,
            diffs=outcome.diff_count,
            tasks=outcome.task_count,
            since=outcome.since,
        )
        return outcome

    def request_poll(self) -> bool:
        """请求一轮 poll；已有 poll 进行中时丢弃本次请求

        Returns:
            True 如果启动了新的 poll
        """
        if self._closed:
            return False
        if self.polling:
            log.debug("collector_poll_dropped", reason="poll_in_flight")
            return False
        self._in_flight = asyncio.create_task(self.poll())
        return True

    async def run(self, stop_event: asyncio.Event) -> None:
        """立即 poll 一次，之后每 interval_s 请求一次，直到 stop_event 被设置"""
        log.info(
            "collector_started",
            workspace=str(self._config.workspace_dir),
            interval_s=self._config.interval_s,
        )
        try:
            self.request_poll()
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self._config.interval_s)
                except TimeoutError:
                    self.request_poll()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """等待进行中的 poll 完成后关闭账本（幂等）"""
        if self._closed:
            return
        self._closed = True
        if self.polling:
            log.info("collector_waiting_for_poll")
            await self._in_flight
        await self._ingestor.close()
        log.info("collector_stopped", workspace=str(self._config.workspace_dir))


async def run_collect(
    config: CollectorConfig,
    once: bool = False,
    stop_event: asyncio.Event | None = None,
    cursor_store: CursorStore | None = None,
) -> PollOutcome | None:
    """打开账本并运行采集器

    Args:
        config: 采集器配置
        once: True 时同步执行一轮 poll 后返回
        stop_event: 持续运行模式下的停止信号
        cursor_store: 游标存储，缺省为工作区内的 JSON 文件

    Returns:
        单次模式返回该轮结果（失败为 None），持续模式返回 None

    Raises:
        LedgerUnavailableError: 账本无法打开（唯一的致命错误）
    """
    ingestor = await Ingestor.open(config.database_file)
    collector = Collector(
        config,
        ingestor,
        cursor_store or FileCursorStore(config.state_file),
    )

    if once:
        try:
            return await collector.poll()
        finally:
            await collector.shutdown()

    await collector.run(stop_event or asyncio.Event())
    return None
