"""枚举定义

包含事件类型 EventKind 与摘要风险等级 RiskLevel。
事件 type 在账本中是自由字符串，EventKind 只列出采集管线自身产出的值。
"""

from enum import StrEnum


class EventKind(StrEnum):
    """采集管线产出的事件类型"""

    VK_LOG = "vk_log"
    INCIDENT = "incident"
    GIT_DIFF = "git_diff"


class RiskLevel(StrEnum):
    """风险等级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
