"""Log Tailer -- 增量读取工作区日志

每个日志文件按相对路径记录已读字节数，只解码新追加的部分。
文件缩短（轮转/截断）时从 0 重新读取。
"""

from datetime import datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from devpilot.ingestor.models.ingest import VKLogIngest
from devpilot.ingestor.parsers import log_identity

log = structlog.get_logger()


class TailResult(BaseModel):
    """一次 tail 的结果：新日志条目 + 完整的偏移量快照"""

    logs: list[VKLogIngest] = Field(default_factory=list)
    offsets: dict[str, int] = Field(default_factory=dict)


def _offset_key(workspace_dir: Path, path: Path) -> str:
    try:
        return path.relative_to(workspace_dir).as_posix()
    except ValueError:
        return path.as_posix()


def tail_logs(
    workspace_dir: Path,
    log_dir: Path,
    offsets: dict[str, int],
    captured_at: datetime,
    extension: str = ".log",
) -> TailResult:
    """读取 log_dir 下所有日志文件自上次偏移量之后的新行

    Args:
        workspace_dir: 工作区根目录，偏移量键为相对它的路径
        log_dir: 日志目录，不存在时视为空输入
        offsets: 上一轮的偏移量映射（不会被修改）
        captured_at: 本轮采集时间，作为日志条目的接收时间
        extension: 识别的日志扩展名

    Returns:
        TailResult，offsets 包含未变化文件在内的完整映射
    """
    next_offsets = dict(offsets)
    logs: list[VKLogIngest] = []

    if not log_dir.is_dir():
        return TailResult(logs=logs, offsets=next_offsets)

    for path in sorted(log_dir.iterdir()):
        if not path.is_file() or path.suffix != extension:
            continue

        key = _offset_key(workspace_dir, path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            log.warning("log_read_failed", path=key, error=str(exc))
            continue

        previous = next_offsets.get(key, 0)
        start = previous if len(data) >= previous else 0
        if start != previous:
            log.info("log_truncated", path=key, previous_offset=previous, size=len(data))

        next_offsets[key] = len(data)
        if len(data) <= start:
            continue

        text = data[start:].decode("utf-8", errors="replace")
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue
            logs.append(
                VKLogIngest(
                    id=log_identity(line),
                    content=line,
                    source=path.name,
                    received_at=captured_at,
                )
            )

    return TailResult(logs=logs, offsets=next_offsets)
