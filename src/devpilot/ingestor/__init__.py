"""devpilot Ingestor -- 解析器 + 幂等事件账本

公共入口从此处导入。
"""

from .ingestor import Ingestor
from .parsers import (
    log_identity,
    parse_git_diff,
    parse_vk_log,
    to_digest_events_from_diff,
    to_digest_events_from_vk,
)

__all__ = [
    "Ingestor",
    "log_identity",
    "parse_vk_log",
    "parse_git_diff",
    "to_digest_events_from_vk",
    "to_digest_events_from_diff",
]
