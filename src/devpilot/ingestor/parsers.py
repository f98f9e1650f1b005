"""日志 / diff 解析器 -- 原始文本 -> 结构化中间记录 -> DigestEvent

日志行按 LOG_MATCHERS 顺序逐个尝试，第一个命中者生效；
全部未命中时由 FALLBACK_MATCHER 兜底，把整行当作消息。
新增日志格式只需向 LOG_MATCHERS 追加一个匹配器。
"""

import hashlib
import re
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field
from ulid import ULID

from .config import UNKNOWN_SOURCE
from .models.enums import EventKind
from .models.event import DigestEvent
from .models.ingest import GitDiffIngest, VKLogIngest
from .timeutil import parse_timestamp, utc_now

# 自由文本中的任务标识：TASK-1234 / issue#42 / BUG123
TASK_TOKEN = re.compile(r"(TASK|ISSUE|BUG)[-#]?(?P<id>\d{2,6})", re.IGNORECASE)

DIFF_FILE_HEADER = re.compile(r"^diff --git\s+a/(.+)\s+b/(.+)$", re.MULTILINE)


class LogMatch(BaseModel):
    """单个匹配器的结构化结果"""

    message: str = Field(description="去除前缀与 task 后缀的消息")
    identity_message: str = Field(description="去除 author/severity 前缀后的原文，用于计算事件标识")
    timestamp: str | None = Field(default=None, description="原始时间戳文本")
    author: str | None = None
    severity: str | None = None
    task_id: str | None = Field(default=None, description="模式直接捕获的任务标识")


class LogMatcher(Protocol):
    """日志匹配器：命中返回 LogMatch，否则返回 None"""

    name: str

    def match(self, line: str) -> LogMatch | None: ...


class RegexLogMatcher:
    """基于命名分组正则的匹配器

    支持的分组：timestamp / author / severity / message / task_id，message 必填。
    """

    def __init__(self, name: str, pattern: re.Pattern[str]) -> None:
        self.name = name
        self._pattern = pattern

    def match(self, line: str) -> LogMatch | None:
        found = self._pattern.match(line)
        if found is None:
            return None
        groups = found.groupdict()
        author = (groups.get("author") or "").strip()
        return LogMatch(
            message=groups["message"].strip(),
            identity_message=line[found.start("message"):].strip(),
            timestamp=groups.get("timestamp"),
            author=author or None,
            severity=groups.get("severity"),
            task_id=groups.get("task_id"),
        )


class FallbackLogMatcher:
    """兜底匹配器：整行即消息"""

    name = "fallback"

    def match(self, line: str) -> LogMatch:
        return LogMatch(message=line, identity_message=line)


LOG_MATCHERS: list[LogMatcher] = [
    # [2024-05-01T09:10:11Z] Alice|ERROR: Build failed | task=42
    RegexLogMatcher(
        "bracketed",
        re.compile(
            r"^\[(?P<timestamp>[^\]]+)\]\s*(?P<author>[^:|]+)(?:\|(?P<severity>[A-Z]+))?:"
            r"\s*(?P<message>.+?)(?:\s*\|\s*task=(?P<task_id>[\w-]+))?$",
            re.IGNORECASE,
        ),
    ),
    # 2024-05-01T09:10:11Z ERROR Alice: Build failed
    RegexLogMatcher(
        "leveled",
        re.compile(
            r"^(?P<timestamp>\d{4}-\d{2}-\d{2}[^ ]*)\s+(?P<severity>[A-Z]+)\s+"
            r"(?P<author>[^:]+):\s*(?P<message>.+)$"
        ),
    ),
]

FALLBACK_MATCHER = FallbackLogMatcher()


def match_log_line(line: str) -> LogMatch:
    """按顺序尝试所有匹配器，全部未命中时返回兜底结果"""
    for matcher in LOG_MATCHERS:
        result = matcher.match(line)
        if result is not None:
            return result
    return FALLBACK_MATCHER.match(line)


def extract_task_id(text: str) -> str | None:
    """扫描自由文本中的任务标识，归一化为 TASK-<digits>"""
    found = TASK_TOKEN.search(text)
    if found is None:
        return None
    return f"TASK-{found.group('id')}"


def normalize_task_id(raw: str) -> str:
    """归一化模式捕获的任务标识：纯数字与 TASK/ISSUE/BUG 变体统一为 TASK-<digits>"""
    if raw.isdigit():
        return f"TASK-{raw}"
    found = TASK_TOKEN.fullmatch(raw)
    if found is not None:
        return f"TASK-{found.group('id')}"
    return raw


def normalize_timestamp(
    timestamp: str | None,
    fallback: datetime | None = None,
) -> datetime:
    """解析日志时间戳；失败时依次回退到接收时间、当前时间"""
    parsed = parse_timestamp(timestamp)
    if parsed is not None:
        return parsed
    return fallback or utc_now()


def _sha1(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def _match_identity(match: LogMatch) -> str:
    return _sha1(f"{match.timestamp or ''}|{match.identity_message}")


def log_identity(line: str) -> str:
    """日志行的确定性标识：sha1(时间戳文本|去前缀消息)

    同一行在不同轮次采集时得到相同标识，重复入库覆盖而非重复。
    """
    return _match_identity(match_log_line(line.strip()))


class ParsedVKEvent(BaseModel):
    """日志解析中间记录"""

    message: str
    created_at: datetime
    author: str | None = None
    severity: str | None = None
    task_id: str | None = None
    identity: str = Field(description="log_identity 计算结果")


def parse_vk_log(log: VKLogIngest) -> list[ParsedVKEvent]:
    """将日志条目按行解析为中间记录（空行丢弃）"""
    events: list[ParsedVKEvent] = []
    for raw_line in log.content.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        match = match_log_line(line)
        if match.task_id:
            task_id: str | None = normalize_task_id(match.task_id)
        else:
            task_id = extract_task_id(match.message)

        events.append(
            ParsedVKEvent(
                message=match.message,
                created_at=normalize_timestamp(match.timestamp, log.received_at),
                author=match.author,
                severity=match.severity,
                task_id=task_id,
                identity=_match_identity(match),
            )
        )
    return events


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def to_digest_events_from_vk(
    parsed: list[ParsedVKEvent],
    source: str,
) -> list[DigestEvent]:
    """日志中间记录 -> DigestEvent；severity 为 error 的行记为 incident"""
    events: list[DigestEvent] = []
    for entry in parsed:
        severity = entry.severity.lower() if entry.severity else None
        events.append(
            DigestEvent(
                id=entry.identity,
                type=(EventKind.INCIDENT if severity == "error" else EventKind.VK_LOG).value,
                source=source,
                message=entry.message,
                created_at=entry.created_at,
                metadata=_compact(
                    {
                        "author": entry.author,
                        "severity": severity,
                        "raw_severity": entry.severity,
                        "derived_task_id": entry.task_id,
                    }
                ),
                task_id=entry.task_id,
            )
        )
    return events


class ParsedGitDiff(BaseModel):
    """diff 解析中间记录（每个文件一条）"""

    file_path: str
    additions: int
    deletions: int
    created_at: datetime


def _count_prefix(chunk: str, prefix: str) -> int:
    header = prefix * 3
    return sum(
        1
        for line in chunk.splitlines()
        if line.startswith(prefix) and not line.startswith(header)
    )


def _fallback_file_path(content: str) -> str:
    for line in content.splitlines():
        if line.startswith("+++") or line.startswith("---"):
            return re.sub(r"^(\+\+\+|---)\s+", "", line).strip()
    return "untracked"


def parse_git_diff(diff: GitDiffIngest) -> list[ParsedGitDiff]:
    """按 `diff --git a/X b/Y` 切分文件块并统计增删行数"""
    content = diff.content
    created_at = diff.captured_at or utc_now()
    headers = list(DIFF_FILE_HEADER.finditer(content))
    results: list[ParsedGitDiff] = []

    for index, header in enumerate(headers):
        end = headers[index + 1].start() if index + 1 < len(headers) else len(content)
        chunk = content[header.start():end]
        file_path = (header.group(2) or header.group(1)).strip()
        results.append(
            ParsedGitDiff(
                file_path=file_path,
                additions=_count_prefix(chunk, "+"),
                deletions=_count_prefix(chunk, "-"),
                created_at=created_at,
            )
        )

    if not results and content.strip():
        results.append(
            ParsedGitDiff(
                file_path=_fallback_file_path(content),
                additions=_count_prefix(content, "+"),
                deletions=_count_prefix(content, "-"),
                created_at=created_at,
            )
        )

    return results


def format_diff_message(entry: ParsedGitDiff) -> str:
    direction = "expansion" if entry.additions >= entry.deletions else "shrink"
    return f"{entry.file_path} {direction} (+{entry.additions}/-{entry.deletions})"


def to_digest_events_from_diff(
    parsed: list[ParsedGitDiff],
    repository: str | None = None,
    branch: str | None = None,
    commit: str | None = None,
) -> list[DigestEvent]:
    """diff 中间记录 -> DigestEvent

    已知提交哈希时标识为 sha1(commit|file_path)，否则生成 ULID。
    """
    events: list[DigestEvent] = []
    for entry in parsed:
        event_id = _sha1(f"{commit}|{entry.file_path}") if commit else str(ULID())
        events.append(
            DigestEvent(
                id=event_id,
                type=EventKind.GIT_DIFF.value,
                source=repository or UNKNOWN_SOURCE,
                message=format_diff_message(entry),
                created_at=entry.created_at,
                metadata=_compact(
                    {
                        "file_path": entry.file_path,
                        "additions": entry.additions,
                        "deletions": entry.deletions,
                        "branch": branch,
                        "commit": commit,
                    }
                ),
            )
        )
    return events
