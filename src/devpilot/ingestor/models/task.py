"""Task Domain Model

TaskSeed 是从工作区任务清单归一化得到、尚未入库的任务描述；
StoredTask 是写入账本后的任务记录。任务只会被创建或更新，不会被删除。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class TaskSeed(BaseModel):
    """任务种子（未入库）"""

    id: str | None = Field(default=None, description="任务标识，缺省时入库生成 ULID")
    title: str = Field(description="任务标题")
    status: str | None = Field(default=None, description="任务状态")
    priority: int | None = Field(default=None, description="优先级（数字越小越高）")
    assignee: str | None = Field(default=None, description="负责人")
    created_at: datetime | None = Field(default=None, description="创建时间")
    metadata: dict[str, Any] = Field(default_factory=dict, description="附加信息")


class StoredTask(BaseModel):
    """已入库的任务记录"""

    id: str = Field(description="任务标识")
    title: str = Field(description="任务标题")
    status: str = Field(description="任务状态")
    priority: int = Field(description="优先级")
    assignee: str | None = Field(default=None, description="负责人")
    created_at: datetime = Field(description="创建时间")
    metadata: dict[str, Any] = Field(default_factory=dict, description="附加信息")


def create_task_seed(title: str, **fields: Any) -> TaskSeed:
    """以标题为必填项构造 TaskSeed，值为 None 的字段按缺省处理"""
    provided = {key: value for key, value in fields.items() if value is not None}
    return TaskSeed(title=title, **provided)
