"""TaskStore SQLite 实现

任务按 id insert-or-update，缺省 id 时生成 ULID。
任务只由任务清单创建或更新，管线不会删除任务。
"""

import json
from datetime import datetime

import aiosqlite
from ulid import ULID

from ..config import DEFAULT_TASK_PRIORITY, DEFAULT_TASK_STATUS
from ..models.task import StoredTask, TaskSeed
from ..timeutil import to_iso, utc_now

_TASK_COLUMNS = "id, title, status, priority, assignee, created_at, metadata"


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_task(self, seed: TaskSeed) -> StoredTask:
        """插入或更新任务记录，补齐默认值

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        task = StoredTask(
            id=seed.id or str(ULID()),
            title=seed.title,
            status=seed.status or DEFAULT_TASK_STATUS,
            priority=seed.priority if seed.priority is not None else DEFAULT_TASK_PRIORITY,
            assignee=seed.assignee,
            created_at=seed.created_at or utc_now(),
            metadata=seed.metadata,
        )
        await self._conn.execute(
            """
            INSERT INTO tasks (id, title, status, priority, assignee, created_at, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                status = excluded.status,
                priority = excluded.priority,
                assignee = excluded.assignee,
                created_at = excluded.created_at,
                metadata = excluded.metadata
            """,
            (
                task.id,
                task.title,
                task.status,
                task.priority,
                task.assignee,
                to_iso(task.created_at),
                json.dumps(task.metadata, ensure_ascii=False),
            ),
        )
        return task

    async def get_task(self, task_id: str) -> StoredTask | None:
        """根据 id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(self, status: str | None = None) -> list[StoredTask]:
        """查询任务列表，支持按状态筛选，按优先级、created_at 排序"""
        if status:
            cursor = await self._conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE status = ? "
                "ORDER BY priority ASC, created_at DESC",
                (status,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY priority ASC, created_at DESC"
            )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> StoredTask:
        """将数据库行转换为 StoredTask 模型"""
        return StoredTask(
            id=row[0],
            title=row[1],
            status=row[2],
            priority=row[3],
            assignee=row[4],
            created_at=datetime.fromisoformat(row[5]),
            metadata=json.loads(row[6]) if row[6] else {},
        )
