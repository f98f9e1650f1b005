"""单记录原子事务封装

事件与任务的 upsert 各自在独立事务内提交：单条失败只回滚该条，
已提交的记录不受影响，重新入库时依靠 id 幂等覆盖。
"""

import aiosqlite

from ..models.event import DigestEvent
from ..models.summary import StoredSummary, SummaryRecord
from ..models.task import StoredTask, TaskSeed
from .event_store import SqliteEventStore
from .summary_store import SqliteSummaryStore
from .task_store import SqliteTaskStore


async def upsert_event_atomic(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    event: DigestEvent,
) -> None:
    """在单独事务内写入一条事件

    Raises:
        Exception: 写入失败时回滚后原样抛出
    """
    try:
        await event_store.upsert_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def upsert_task_atomic(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    seed: TaskSeed,
) -> StoredTask:
    """在单独事务内写入一条任务"""
    try:
        task = await task_store.upsert_task(seed)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return task


async def record_summaries(
    conn: aiosqlite.Connection,
    summary_store: SqliteSummaryStore,
    records: list[SummaryRecord],
    replace_existing: bool = True,
) -> list[StoredSummary]:
    """在同一事务内写入一批摘要

    替换模式下，批次中每个任务的历史摘要在插入前删除一次，
    因此同一批次内同一任务的多条摘要会作为同一代一起保留。

    Args:
        conn: 数据库连接
        summary_store: SummaryStore 实例
        records: 摘要列表
        replace_existing: 是否替换任务已有摘要
    """
    try:
        if replace_existing:
            task_ids = list(dict.fromkeys(record.task_id for record in records))
            for task_id in task_ids:
                await summary_store.delete_for_task(task_id)

        stored = [await summary_store.insert_summary(record) for record in records]
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return stored
