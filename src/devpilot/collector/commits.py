"""Commit Collector -- 从 git 历史采集新提交的 diff

按时间水位列出提交（旧 -> 新），跳过已处理的提交，逐个获取 patch。
单个提交获取失败只跳过该提交；历史查询失败则本轮不产出 diff。
"""

import asyncio
import os
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from devpilot.ingestor.exceptions import GitCommandError
from devpilot.ingestor.models.ingest import GitDiffIngest
from devpilot.ingestor.timeutil import parse_timestamp

log = structlog.get_logger()

MAX_PROCESSED_COMMITS = 200


async def run_git(cwd: Path, *args: str) -> str:
    """执行 git 子命令并返回 stdout

    Raises:
        GitCommandError: git 不可用或以非零退出码结束
    """
    env = {**os.environ, "GIT_PAGER": "cat"}
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(cwd),
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise GitCommandError(list(args), None, str(exc)) from exc

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise GitCommandError(
            list(args),
            proc.returncode,
            stderr.decode("utf-8", errors="replace"),
        )
    return stdout.decode("utf-8", errors="replace")


class CommitCollection(BaseModel):
    """提交采集结果"""

    diffs: list[GitDiffIngest] = Field(default_factory=list)
    processed_commits: list[str] = Field(default_factory=list)


def git_since_arg(since: str) -> str:
    """ISO 水位 -> git 可靠解析的 "YYYY-MM-DD HH:MM:SS +0000"，无法解析时原样返回"""
    parsed = parse_timestamp(since)
    if parsed is None:
        return since
    return parsed.strftime("%Y-%m-%d %H:%M:%S +0000")


def trim_processed(processed: list[str], limit: int = MAX_PROCESSED_COMMITS) -> list[str]:
    """只保留最近的 limit 个提交（从头部淘汰最旧的）"""
    if len(processed) <= limit:
        return list(processed)
    return processed[len(processed) - limit:]


async def resolve_repository(cwd: Path) -> str | None:
    try:
        value = (await run_git(cwd, "config", "--get", "remote.origin.url")).strip()
    except GitCommandError:
        return None
    return value or None


async def resolve_branch(cwd: Path) -> str | None:
    try:
        branch = (await run_git(cwd, "rev-parse", "--abbrev-ref", "HEAD")).strip()
    except GitCommandError:
        return None
    return None if branch in ("", "HEAD") else branch


def _parse_commit_listing(stdout: str) -> list[tuple[str, datetime | None]]:
    """解析 `%H%x09%cI` 输出并反转为旧 -> 新"""
    commits: list[tuple[str, datetime | None]] = []
    for line in stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        sha, _, committed = line.partition("\t")
        commits.append((sha.strip(), parse_timestamp(committed)))
    commits.reverse()
    return commits


async def collect_commit_diffs(
    workspace_dir: Path,
    since: str,
    processed_commits: list[str],
    captured_at: datetime,
    max_processed: int = MAX_PROCESSED_COMMITS,
) -> CommitCollection:
    """采集 since 之后尚未处理的提交 diff

    Args:
        workspace_dir: git 工作目录
        since: 时间水位（ISO 8601）
        processed_commits: 已处理提交（旧 -> 新）
        captured_at: 本轮采集时间，提交时间不可用时作为 diff 时间
        max_processed: 已处理提交记忆上限

    Returns:
        CommitCollection；历史查询失败时 diffs 为空、processed_commits 不变
    """
    processed = list(processed_commits)

    try:
        listing = await run_git(
            workspace_dir,
            "log",
            f"--since={git_since_arg(since)}",
            "--pretty=format:%H%x09%cI",
        )
    except GitCommandError as exc:
        log.warning("git_history_unavailable", cwd=str(workspace_dir), error=str(exc))
        return CommitCollection(processed_commits=processed)

    commits = _parse_commit_listing(listing)
    if not commits:
        return CommitCollection(processed_commits=processed)

    repository = await resolve_repository(workspace_dir)
    branch = await resolve_branch(workspace_dir)

    seen = set(processed)
    diffs: list[GitDiffIngest] = []
    for sha, committed_at in commits:
        if sha in seen:
            continue
        try:
            patch = await run_git(workspace_dir, "show", sha, "--patch", "--no-color")
        except GitCommandError as exc:
            log.warning("commit_diff_failed", commit=sha, error=str(exc))
            continue

        diffs.append(
            GitDiffIngest(
                content=patch,
                repository=repository,
                branch=branch,
                commit=sha,
                captured_at=committed_at or captured_at,
            )
        )
        processed.append(sha)
        seen.add(sha)

    return CommitCollection(
        diffs=diffs,
        processed_commits=trim_processed(processed, max_processed),
    )
