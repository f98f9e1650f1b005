"""devpilot Ingestor Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

from pathlib import Path

import aiosqlite

from ..exceptions import LedgerUnavailableError
from .event_store import SqliteEventStore
from .sqlite_init import init_db
from .summary_store import SqliteSummaryStore
from .task_store import SqliteTaskStore
from .transaction import record_summaries, upsert_event_atomic, upsert_task_atomic


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.event_store = SqliteEventStore(conn)
        self.task_store = SqliteTaskStore(conn)
        self.summary_store = SqliteSummaryStore(conn)


async def create_store_group(db_path: str | Path) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径（":memory:" 为内存库）

    Returns:
        StoreGroup 实例

    Raises:
        LedgerUnavailableError: 数据库无法打开或初始化
    """
    db_path = str(db_path)
    if db_path != ":memory:":
        # 确保数据库目录存在
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = await aiosqlite.connect(db_path)
    except (OSError, aiosqlite.Error) as exc:
        raise LedgerUnavailableError(db_path, exc) from exc

    conn.row_factory = aiosqlite.Row
    try:
        await init_db(conn)
    except aiosqlite.Error as exc:
        await conn.close()
        raise LedgerUnavailableError(db_path, exc) from exc

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteEventStore",
    "SqliteTaskStore",
    "SqliteSummaryStore",
    "init_db",
    "upsert_event_atomic",
    "upsert_task_atomic",
    "record_summaries",
]
