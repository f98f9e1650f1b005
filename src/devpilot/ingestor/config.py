"""配置常量模块 -- 可通过环境变量覆盖

包含任务默认值、SQLite 连接参数等可配置常量。
"""

import os

# 首次采集时使用的时间水位（Unix epoch）
EPOCH_ISO: str = "1970-01-01T00:00:00.000Z"

# 任务清单未提供时的默认值
DEFAULT_TASK_STATUS: str = os.environ.get("DEVPILOT_DEFAULT_TASK_STATUS", "open")
DEFAULT_TASK_PRIORITY: int = int(os.environ.get("DEVPILOT_DEFAULT_TASK_PRIORITY", "3"))
DEFAULT_TASK_TITLE: str = "Untitled Task"

# 无仓库信息时 diff 事件的来源标签
UNKNOWN_SOURCE: str = "unknown"

# SQLite 锁等待时间（毫秒）
SQLITE_BUSY_TIMEOUT_MS: int = int(
    os.environ.get("DEVPILOT_SQLITE_BUSY_TIMEOUT_MS", "5000")
)
