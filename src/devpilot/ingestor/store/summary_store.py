"""SummaryStore SQLite 实现

摘要由下游生成，这里只负责持久化与替换。
"""

import json
from datetime import datetime

import aiosqlite
from ulid import ULID

from ..models.summary import StoredSummary, SummaryRecord
from ..timeutil import to_iso, utc_now

_SUMMARY_COLUMNS = (
    "id, task_id, status, summary, risk, next_steps, diff_summary, created_at"
)


class SqliteSummaryStore:
    """SummaryStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert_summary(self, record: SummaryRecord) -> StoredSummary:
        """按 id 插入或更新一条摘要（不提交事务）"""
        stored = StoredSummary(
            id=record.id or str(ULID()),
            task_id=record.task_id,
            status=record.status,
            summary=record.summary,
            risk=record.risk,
            next_steps=record.next_steps,
            diff_summary=record.diff_summary,
            created_at=record.created_at or utc_now(),
        )
        await self._conn.execute(
            """
            INSERT INTO summaries (id, task_id, status, summary, risk,
                                   next_steps, diff_summary, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                task_id = excluded.task_id,
                status = excluded.status,
                summary = excluded.summary,
                risk = excluded.risk,
                next_steps = excluded.next_steps,
                diff_summary = excluded.diff_summary,
                created_at = excluded.created_at
            """,
            (
                stored.id,
                stored.task_id,
                stored.status,
                stored.summary,
                stored.risk.value,
                json.dumps(stored.next_steps, ensure_ascii=False),
                stored.diff_summary,
                to_iso(stored.created_at),
            ),
        )
        return stored

    async def delete_for_task(self, task_id: str) -> None:
        """删除指定任务的全部历史摘要（不提交事务）"""
        await self._conn.execute(
            "DELETE FROM summaries WHERE task_id = ?",
            (task_id,),
        )

    async def list_for_task(self, task_id: str) -> list[StoredSummary]:
        """查询指定任务的摘要，按生成时间倒序"""
        cursor = await self._conn.execute(
            f"SELECT {_SUMMARY_COLUMNS} FROM summaries WHERE task_id = ? "
            "ORDER BY created_at DESC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_summary(row) for row in rows]

    @staticmethod
    def _row_to_summary(row: aiosqlite.Row) -> StoredSummary:
        """将数据库行转换为 StoredSummary 模型"""
        return StoredSummary(
            id=row[0],
            task_id=row[1],
            status=row[2],
            summary=row[3],
            risk=row[4],
            next_steps=json.loads(row[5]) if row[5] else [],
            diff_summary=row[6],
            created_at=datetime.fromisoformat(row[7]),
        )
