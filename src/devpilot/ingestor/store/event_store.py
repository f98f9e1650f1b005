"""EventStore SQLite 实现

事件按 id insert-or-update：同一底层数据重复入库只会覆盖，不会产生重复行。
"""

import json
from datetime import datetime
from typing import Any

import aiosqlite

from ..models.event import DigestEvent, EventQuery
from ..timeutil import coerce_datetime, to_iso

_EVENT_COLUMNS = "id, type, source, message, created_at, metadata, task_id"


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def upsert_event(self, event: DigestEvent) -> None:
        """按 id 插入或更新事件

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO events (id, type, source, message, created_at, metadata, task_id)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                type = excluded.type,
                source = excluded.source,
                message = excluded.message,
                created_at = excluded.created_at,
                metadata = excluded.metadata,
                task_id = excluded.task_id
            """,
            (
                event.id,
                event.type,
                event.source,
                event.message,
                to_iso(event.created_at),
                json.dumps(event.metadata, ensure_ascii=False),
                event.task_id,
            ),
        )

    async def get_event(self, event_id: str) -> DigestEvent | None:
        """根据 id 查询事件"""
        cursor = await self._conn.execute(
            f"SELECT {_EVENT_COLUMNS} FROM events WHERE id = ?",
            (event_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    async def list_events(self, query: EventQuery) -> list[DigestEvent]:
        """查询 created_at >= since 的事件，按事件时间倒序

        types 与 task_ids 两组条件 AND 组合，组内为 OR（IN）。
        """
        clauses = ["julianday(created_at) >= julianday(?)"]
        params: list[Any] = [to_iso(coerce_datetime(query.since))]

        filters = query.filters
        if filters is not None and filters.types:
            clauses.append(f"type IN ({', '.join('?' * len(filters.types))})")
            params.extend(filters.types)
        if filters is not None and filters.task_ids:
            clauses.append(f"task_id IN ({', '.join('?' * len(filters.task_ids))})")
            params.extend(filters.task_ids)

        sql = (
            f"SELECT {_EVENT_COLUMNS} FROM events "
            f"WHERE {' AND '.join(clauses)} "
            "ORDER BY julianday(created_at) DESC, id ASC"
        )
        if query.limit:
            sql += " LIMIT ?"
            params.append(query.limit)

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def count_events(self) -> int:
        """账本中的事件总数"""
        cursor = await self._conn.execute("SELECT COUNT(*) FROM events")
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> DigestEvent:
        """将数据库行转换为 DigestEvent 模型"""
        return DigestEvent(
            id=row[0],
            type=row[1],
            source=row[2],
            message=row[3],
            created_at=datetime.fromisoformat(row[4]),
            metadata=_safe_load_metadata(row[5]),
            task_id=row[6],
        )


def _safe_load_metadata(serialized: str | None) -> dict[str, Any]:
    """metadata 列损坏时返回空字典，不影响查询"""
    try:
        value = json.loads(serialized or "{}")
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}
