"""devpilot Collector -- 工作区活动增量采集

公共入口从此处导入。
"""

from .commits import CommitCollection, collect_commit_diffs
from .config import CollectorConfig, load_collector_config
from .cursor import CollectorCursor, CursorStore, FileCursorStore, MemoryCursorStore
from .loop import Collector, PollOutcome, run_collect, run_poll
from .tailer import TailResult, tail_logs
from .tasks import load_task_seeds

__all__ = [
    "CollectorConfig",
    "load_collector_config",
    "CollectorCursor",
    "CursorStore",
    "FileCursorStore",
    "MemoryCursorStore",
    "TailResult",
    "tail_logs",
    "CommitCollection",
    "collect_commit_diffs",
    "load_task_seeds",
    "Collector",
    "PollOutcome",
    "run_poll",
    "run_collect",
]
