"""时间戳工具 -- 统一的 UTC ISO 8601 表示

账本中的 created_at 统一存储为毫秒精度、Z 结尾的 UTC 字符串，
保证跨来源的时间可以直接比较与排序。
"""

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    """datetime -> "YYYY-MM-DDTHH:MM:SS.mmmZ"（无时区视为 UTC）"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str | None) -> datetime | None:
    """尝试将文本解析为 UTC datetime，失败返回 None

    支持 ISO 8601（含 Z 后缀、仅日期）与 RFC 2822 两种写法。
    """
    if not text:
        return None
    candidate = text.strip()
    if not candidate:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(candidate)
        except (TypeError, ValueError, IndexError, OverflowError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    try:
        return parsed.astimezone(UTC)
    except OverflowError:
        # 换算到 UTC 后超出 datetime 可表示范围（如 0001-01-01T00:00:00+01:00）
        return None


def coerce_datetime(value: datetime | str) -> datetime:
    """接受 datetime 或 ISO 字符串，返回带时区的 UTC datetime

    Raises:
        ValueError: 字符串无法解析
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"无法解析时间戳: {value!r}")
    return parsed
