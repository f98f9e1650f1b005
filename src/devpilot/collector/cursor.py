"""Collector Cursor -- 采集进度的持久化状态

游标以显式值的形式在每轮 poll 中传入、传出；持久化只通过
CursorStore.load / save 这一窄接口完成，便于替换底层存储。
"""

import os
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from ulid import ULID

from devpilot.ingestor.config import EPOCH_ISO
from devpilot.ingestor.timeutil import parse_timestamp

log = structlog.get_logger()


class CollectorCursor(BaseModel):
    """采集游标

    JSON 形式使用 lastPollIso / logOffsets / processedCommits 键，必须精确往返。
    """

    model_config = ConfigDict(populate_by_name=True)

    last_poll_iso: str = Field(
        default=EPOCH_ISO,
        alias="lastPollIso",
        description="提交历史查询的时间水位",
    )
    log_offsets: dict[str, int] = Field(
        default_factory=dict,
        alias="logOffsets",
        description="日志相对路径 -> 已读取字节数",
    )
    processed_commits: list[str] = Field(
        default_factory=list,
        alias="processedCommits",
        description="已入库的提交哈希（旧 -> 新，有上限）",
    )

    @field_validator("last_poll_iso")
    @classmethod
    def _check_watermark(cls, value: str) -> str:
        if parse_timestamp(value) is None:
            raise ValueError(f"无法解析的时间水位: {value!r}")
        return value

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class CursorStore(Protocol):
    """游标存储接口"""

    def load(self) -> CollectorCursor:
        """读取游标；不存在或无法解析时返回零值游标"""
        ...

    def save(self, cursor: CollectorCursor) -> None:
        """整体替换已持久化的游标"""
        ...


class FileCursorStore:
    """基于 JSON 文件的游标存储"""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CollectorCursor:
        try:
            contents = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return CollectorCursor()
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("cursor_load_failed", path=str(self._path), error=str(exc))
            return CollectorCursor()

        try:
            return CollectorCursor.model_validate_json(contents)
        except ValidationError as exc:
            log.warning(
                "cursor_load_failed",
                path=str(self._path),
                error=str(exc),
                fallback="initial_cursor",
            )
            return CollectorCursor()

    def save(self, cursor: CollectorCursor) -> None:
        """写临时文件 + fsync + rename，读者只会看到完整的旧游标或新游标"""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_name(f".{self._path.name}.{ULID()}.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(cursor.to_json())
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self._path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise


class MemoryCursorStore:
    """内存游标存储，用于单次运行或测试"""

    def __init__(self, cursor: CollectorCursor | None = None) -> None:
        self._cursor = cursor or CollectorCursor()
        self.save_count = 0

    def load(self) -> CollectorCursor:
        return self._cursor.model_copy(deep=True)

    def save(self, cursor: CollectorCursor) -> None:
        self._cursor = cursor.model_copy(deep=True)
        self.save_count += 1
