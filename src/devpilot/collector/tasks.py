"""Task Loader -- 读取工作区任务清单并归一化为 TaskSeed

清单可以是任务对象列表，也可以是带 tasks 列表的对象。
文件不存在视为零任务；内容无法解析时记录警告并视为零任务。
"""

import hashlib
import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from devpilot.ingestor.config import DEFAULT_TASK_TITLE
from devpilot.ingestor.models.task import TaskSeed, create_task_seed
from devpilot.ingestor.timeutil import parse_timestamp

log = structlog.get_logger()

_KNOWN_FIELDS = {"id", "title", "status", "priority", "assignee", "createdAt", "metadata"}


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def derive_task_id(title: str) -> str:
    """无 id 的清单条目按标题派生稳定标识，每轮重复读取清单时覆盖同一任务"""
    return f"task-{hashlib.sha1(title.encode('utf-8')).hexdigest()[:16]}"


def normalize_task_entry(entry: dict[str, Any]) -> TaskSeed:
    """将清单中的单个条目归一化为 TaskSeed

    类型正确的已知字段原样透传；显式 metadata 对象优先，
    否则未识别的字段并入 metadata。
    """
    title = entry.get("title")
    if not isinstance(title, str):
        title = DEFAULT_TASK_TITLE
    priority = entry.get("priority")
    if isinstance(priority, bool) or not isinstance(priority, int):
        priority = None

    metadata = entry.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {key: value for key, value in entry.items() if key not in _KNOWN_FIELDS}

    return create_task_seed(
        title,
        id=_optional_str(entry.get("id")) or derive_task_id(title),
        status=_optional_str(entry.get("status")),
        priority=priority,
        assignee=_optional_str(entry.get("assignee")),
        created_at=parse_timestamp(_optional_str(entry.get("createdAt"))),
        metadata=metadata,
    )


def _manifest_entries(parsed: Any) -> list[Any] | None:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict) and isinstance(parsed.get("tasks"), list):
        return parsed["tasks"]
    return None


def load_task_seeds(manifest_path: Path) -> list[TaskSeed]:
    """读取任务清单

    Args:
        manifest_path: 清单文件路径（通常为 <workspace>/.vk/tasks.json）

    Returns:
        TaskSeed 列表，缺失或无效清单返回空列表
    """
    try:
        contents = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as exc:
        log.warning("task_manifest_unreadable", path=str(manifest_path), error=str(exc))
        return []
    except UnicodeDecodeError as exc:
        log.warning("task_manifest_invalid", path=str(manifest_path), error=str(exc))
        return []

    try:
        parsed = json.loads(contents)
    except json.JSONDecodeError as exc:
        log.warning("task_manifest_invalid", path=str(manifest_path), error=str(exc))
        return []

    entries = _manifest_entries(parsed)
    if entries is None:
        log.warning(
            "task_manifest_invalid",
            path=str(manifest_path),
            error="expected a list or an object with a 'tasks' list",
        )
        return []

    seeds: list[TaskSeed] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            log.warning("task_entry_skipped", path=str(manifest_path), index=index)
            continue
        try:
            seeds.append(normalize_task_entry(entry))
        except ValidationError as exc:
            log.warning(
                "task_entry_skipped",
                path=str(manifest_path),
                index=index,
                error=str(exc),
            )
    return seeds
