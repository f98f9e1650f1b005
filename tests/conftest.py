"""全局 pytest 配置 -- 临时 SQLite 账本 + git 工作区 fixture"""

import os
import subprocess
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "events.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from devpilot.ingestor.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def ingestor(tmp_db_path: Path):
    """提供打开在临时账本上的 Ingestor"""
    from devpilot.ingestor import Ingestor

    instance = await Ingestor.open(tmp_db_path)
    yield instance
    await instance.close()


def _git(cwd: Path, *args: str, date: str | None = None) -> str:
    env = {**os.environ, "GIT_PAGER": "cat"}
    if date:
        env["GIT_AUTHOR_DATE"] = date
        env["GIT_COMMITTER_DATE"] = date
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env=env,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """提供带 .vk 目录的空工作区（未初始化 git）"""
    ws = tmp_path / "workspace"
    (ws / ".vk").mkdir(parents=True)
    return ws


@pytest.fixture
def git_workspace(workspace: Path) -> Path:
    """提供已初始化 git 仓库的工作区"""
    _git(workspace, "init", "-q")
    _git(workspace, "config", "user.name", "Collector")
    _git(workspace, "config", "user.email", "collector@example.com")
    _git(workspace, "config", "commit.gpgsign", "false")
    return workspace


@pytest.fixture
def commit_file() -> Callable[..., str]:
    """提交一个文件并返回提交哈希"""

    def _commit(
        ws: Path,
        name: str,
        content: str,
        message: str = "update",
        date: str = "2024-06-20T12:00:00Z",
    ) -> str:
        target = ws / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        _git(ws, "add", name)
        _git(ws, "commit", "-q", "-m", message, date=date)
        return _git(ws, "rev-parse", "HEAD")

    return _commit
