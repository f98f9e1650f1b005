"""Summary Domain Model

摘要由下游协作方生成，仅在此持久化。
替换模式下，每个任务只保留最新一代摘要。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import RiskLevel


class SummaryRecord(BaseModel):
    """待持久化的任务摘要"""

    id: str | None = Field(default=None, description="摘要标识，缺省时生成 ULID")
    task_id: str = Field(description="关联的 Task ID")
    status: str = Field(description="任务状态判断")
    summary: str = Field(default="", description="摘要正文")
    risk: RiskLevel = Field(description="风险等级")
    next_steps: list[str] = Field(default_factory=list, description="后续步骤（有序）")
    diff_summary: str = Field(default="", description="代码变更摘要")
    created_at: datetime | None = Field(default=None, description="生成时间")


class StoredSummary(SummaryRecord):
    """已入库的任务摘要"""

    id: str = Field(description="摘要标识")
    created_at: datetime = Field(description="生成时间")
