"""Ingestor -- 下游消费方的入口

ingest: 任务 upsert -> 日志/diff 解析为事件 -> 事件 upsert -> 按水位查询结果。
list_events: 按水位 + 类型/任务过滤查询，最新在前。
record_summaries: 持久化下游生成的摘要，支持替换模式。
"""

from pathlib import Path

import structlog

from .models.event import DigestEvent, EventFilter, EventQuery
from .models.ingest import IngestOptions, IngestResult, VKLogIngest
from .models.summary import StoredSummary, SummaryRecord
from .parsers import (
    parse_git_diff,
    parse_vk_log,
    to_digest_events_from_diff,
    to_digest_events_from_vk,
)
from .store import StoreGroup, create_store_group
from .store.transaction import record_summaries, upsert_event_atomic, upsert_task_atomic

log = structlog.get_logger()

DEFAULT_LOG_SOURCE = "vk"


class Ingestor:
    """事件账本的读写门面，持有唯一的数据库连接"""

    def __init__(self, stores: StoreGroup) -> None:
        self._stores = stores

    @classmethod
    async def open(cls, db_path: str | Path = ":memory:") -> "Ingestor":
        """打开（必要时创建）账本

        Raises:
            LedgerUnavailableError: 数据库无法打开
        """
        return cls(await create_store_group(db_path))

    @property
    def stores(self) -> StoreGroup:
        return self._stores

    async def ingest(self, options: IngestOptions) -> IngestResult:
        """入库一批原始数据，返回水位之后的可查询事件与已入库任务"""
        stores = self._stores

        tasks = [
            await upsert_task_atomic(stores.conn, stores.task_store, seed)
            for seed in options.tasks
        ]

        events = self._build_events(options)
        for event in events:
            await upsert_event_atomic(stores.conn, stores.event_store, event)

        queried = await self.list_events(
            EventQuery(
                since=options.since,
                limit=options.limit,
                filters=EventFilter(types=options.types) if options.types else None,
            )
        )
        log.debug(
            "ingest_completed",
            tasks=len(tasks),
            written=len(events),
            returned=len(queried),
        )
        return IngestResult(events=queried, tasks=tasks)

    async def list_events(self, query: EventQuery) -> list[DigestEvent]:
        return await self._stores.event_store.list_events(query)

    async def record_summaries(
        self,
        summaries: SummaryRecord | list[SummaryRecord],
        replace_existing: bool = True,
    ) -> list[StoredSummary]:
        """持久化一条或一批摘要

        Args:
            summaries: 单条或多条摘要
            replace_existing: True 时先删除相关任务的历史摘要
        """
        records = summaries if isinstance(summaries, list) else [summaries]
        return await record_summaries(
            self._stores.conn,
            self._stores.summary_store,
            records,
            replace_existing=replace_existing,
        )

    async def close(self) -> None:
        await self._stores.conn.close()

    @staticmethod
    def _build_events(options: IngestOptions) -> list[DigestEvent]:
        events: list[DigestEvent] = []
        for vk_log in options.vk_logs:
            events.extend(_events_from_log(vk_log))
        for diff in options.git_diffs:
            events.extend(
                to_digest_events_from_diff(
                    parse_git_diff(diff),
                    repository=diff.repository,
                    branch=diff.branch,
                    commit=diff.commit,
                )
            )
        return events


def _events_from_log(vk_log: VKLogIngest) -> list[DigestEvent]:
    events = to_digest_events_from_vk(
        parse_vk_log(vk_log),
        vk_log.source or DEFAULT_LOG_SOURCE,
    )
    # 单行条目沿用采集端计算的确定性标识
    if vk_log.id and len(events) == 1:
        events[0] = events[0].model_copy(update={"id": vk_log.id})
    return events
