"""devpilot Ingestor Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import EventKind, RiskLevel
from .event import DigestEvent, EventFilter, EventQuery
from .ingest import GitDiffIngest, IngestOptions, IngestResult, VKLogIngest
from .summary import StoredSummary, SummaryRecord
from .task import StoredTask, TaskSeed, create_task_seed

__all__ = [
    # 枚举
    "EventKind",
    "RiskLevel",
    # Event
    "DigestEvent",
    "EventFilter",
    "EventQuery",
    # Task
    "TaskSeed",
    "StoredTask",
    "create_task_seed",
    # Summary
    "SummaryRecord",
    "StoredSummary",
    # Ingest
    "VKLogIngest",
    "GitDiffIngest",
    "IngestOptions",
    "IngestResult",
]
