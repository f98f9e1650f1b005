"""CollectorConfig -- 采集器配置加载

从环境变量加载配置，所有路径相对工作区根目录解析。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class CollectorConfig(BaseModel):
    """采集器配置

    环境变量:
        DEVPILOT_WORKSPACE: 工作区根目录（默认当前目录）
        DEVPILOT_COLLECT_INTERVAL_S: 轮询间隔（秒，默认 120）
        DEVPILOT_DB_PATH: 事件账本路径（默认 <workspace>/events.db）
    """

    workspace_dir: Path = Field(default_factory=Path.cwd, description="工作区根目录")
    interval_s: float = Field(default=120.0, gt=0, description="轮询间隔（秒）")
    vk_dir_name: str = Field(default=".vk", description="日志与任务清单目录")
    log_extension: str = Field(default=".log", description="识别的日志扩展名")
    state_filename: str = Field(
        default="events-collector-state.json",
        description="游标文件名（位于 vk 目录下）",
    )
    tasks_filename: str = Field(default="tasks.json", description="任务清单文件名")
    db_path: Path | None = Field(default=None, description="事件账本路径，缺省位于工作区根目录")
    max_processed_commits: int = Field(default=200, ge=1, description="已处理提交记忆上限")

    @property
    def vk_dir(self) -> Path:
        return self.workspace_dir / self.vk_dir_name

    @property
    def state_file(self) -> Path:
        return self.vk_dir / self.state_filename

    @property
    def tasks_file(self) -> Path:
        return self.vk_dir / self.tasks_filename

    @property
    def database_file(self) -> Path:
        return self.db_path or self.workspace_dir / "events.db"


def load_collector_config(
    workspace_dir: str | Path | None = None,
    interval_s: float | None = None,
) -> CollectorConfig:
    """从环境变量加载采集器配置，显式参数优先

    环境变量映射:
        DEVPILOT_WORKSPACE -> workspace_dir (默认当前目录)
        DEVPILOT_COLLECT_INTERVAL_S -> interval_s (默认 120)
        DEVPILOT_DB_PATH -> db_path (默认 <workspace>/events.db)

    Returns:
        CollectorConfig 实例
    """
    kwargs: dict = {}

    workspace = workspace_dir or os.environ.get("DEVPILOT_WORKSPACE")
    if workspace:
        kwargs["workspace_dir"] = Path(workspace).resolve()
    else:
        kwargs["workspace_dir"] = Path.cwd().resolve()

    if interval_s is not None:
        kwargs["interval_s"] = interval_s
    elif val := os.environ.get("DEVPILOT_COLLECT_INTERVAL_S"):
        try:
            parsed = float(val)
            if parsed <= 0:
                raise ValueError(val)
            kwargs["interval_s"] = parsed
        except ValueError:
            log.warning(
                "invalid_interval_config",
                env_var="DEVPILOT_COLLECT_INTERVAL_S",
                value=val,
                fallback=120,
            )
            # 使用默认值，不阻塞启动

    if val := os.environ.get("DEVPILOT_DB_PATH"):
        kwargs["db_path"] = Path(val)

    return CollectorConfig(**kwargs)
