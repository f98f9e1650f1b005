"""Ingest 输入/输出模型

采集器产出的原始日志、diff 与任务种子以批次形式交给 Ingestor。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .event import DigestEvent
from .task import StoredTask, TaskSeed


class VKLogIngest(BaseModel):
    """原始日志条目"""

    content: str = Field(description="原始日志文本（可包含多行）")
    source: str | None = Field(default=None, description="来源标签，通常为日志文件名")
    received_at: datetime | None = Field(default=None, description="采集时间")
    id: str | None = Field(default=None, description="确定性标识（单行条目由 tailer 计算）")


class GitDiffIngest(BaseModel):
    """原始提交 diff"""

    content: str = Field(description="unified diff 文本")
    repository: str | None = Field(default=None, description="仓库地址")
    branch: str | None = Field(default=None, description="分支名")
    commit: str | None = Field(default=None, description="提交哈希")
    captured_at: datetime | None = Field(default=None, description="提交时间或采集时间")


class IngestOptions(BaseModel):
    """一次 ingest 调用的参数"""

    since: datetime | str = Field(description="结果查询的时间水位")
    limit: int | None = Field(default=None, ge=1, description="结果最大条数")
    types: list[str] | None = Field(default=None, description="结果事件类型过滤")
    vk_logs: list[VKLogIngest] = Field(default_factory=list)
    git_diffs: list[GitDiffIngest] = Field(default_factory=list)
    tasks: list[TaskSeed] = Field(default_factory=list)


class IngestResult(BaseModel):
    """ingest 结果：可查询事件 + 已入库任务"""

    events: list[DigestEvent] = Field(default_factory=list)
    tasks: list[StoredTask] = Field(default_factory=list)
