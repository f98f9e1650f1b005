"""DigestEvent Domain Model

账本中的规范事件记录。created_at 为事件发生时间而非入库时间。
同一底层数据重复入库时 id 不变，写入语义为 insert-or-update。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class DigestEvent(BaseModel):
    """DigestEvent 数据模型"""

    id: str = Field(description="稳定标识，由内容决定")
    type: str = Field(description="事件类型，如 vk_log / incident / git_diff")
    source: str = Field(description="来源标签（日志文件名或仓库地址）")
    message: str = Field(description="可读消息")
    created_at: datetime = Field(description="事件时间（UTC）")
    metadata: dict[str, Any] = Field(default_factory=dict, description="解析器附加信息")
    task_id: str | None = Field(default=None, description="关联的 Task ID")


class EventFilter(BaseModel):
    """事件过滤条件：两组条件之间为 AND，组内为 OR"""

    types: list[str] | None = Field(default=None, description="事件类型白名单")
    task_ids: list[str] | None = Field(default=None, description="Task ID 白名单")


class EventQuery(BaseModel):
    """事件查询参数"""

    since: datetime | str = Field(description="时间水位，返回 created_at >= since 的事件")
    limit: int | None = Field(default=None, ge=1, description="最大返回条数")
    filters: EventFilter | None = Field(default=None, description="过滤条件")
