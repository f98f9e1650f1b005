"""日志 / diff 解析器单元测试

测试内容：
1. 结构化日志模式、时间戳回退、自由文本任务标识提取
2. 日志行确定性标识
3. diff 文件切分与增删统计、无文件头兜底
4. DigestEvent 构建
"""

from datetime import UTC, datetime

from devpilot.ingestor.models import EventKind, GitDiffIngest, VKLogIngest
from devpilot.ingestor.parsers import (
    LOG_MATCHERS,
    ParsedGitDiff,
    ParsedVKEvent,
    extract_task_id,
    format_diff_message,
    log_identity,
    match_log_line,
    parse_git_diff,
    parse_vk_log,
    to_digest_events_from_diff,
    to_digest_events_from_vk,
)


class TestParseVKLog:
    """日志行解析"""

    def test_parses_bracketed_log_and_normalizes_task(self):
        """方括号时间戳 + author|SEVERITY + task= 后缀"""
        log = VKLogIngest(
            content="[2024-05-01T09:10:11Z] Alice|ERROR: Build failed | task=42",
            source="vk",
            received_at=datetime(2024, 5, 1, 9, 15, tzinfo=UTC),
        )

        events = parse_vk_log(log)

        assert len(events) == 1
        event = events[0]
        assert event.message == "Build failed"
        assert event.created_at == datetime(2024, 5, 1, 9, 10, 11, tzinfo=UTC)
        assert event.author == "Alice"
        assert event.severity == "ERROR"
        assert event.task_id == "TASK-42"

    def test_falls_back_to_received_at_for_unparsable_timestamp(self):
        """时间戳无法解析时使用接收时间"""
        received = datetime(2024, 5, 2, tzinfo=UTC)
        log = VKLogIngest(content="[not-a-date] Bob|INFO: All good", received_at=received)

        events = parse_vk_log(log)

        assert len(events) == 1
        assert events[0].created_at == received
        assert events[0].message == "All good"
        assert events[0].severity == "INFO"

    def test_derives_task_id_from_free_form_line(self):
        """无模式命中时整行为消息，并扫描任务标识"""
        received = datetime(2024, 5, 3, 10, 30, tzinfo=UTC)
        log = VKLogIngest(content="Investigating TASK-1234 regression", received_at=received)

        events = parse_vk_log(log)

        assert len(events) == 1
        assert events[0].message == "Investigating TASK-1234 regression"
        assert events[0].task_id == "TASK-1234"
        assert events[0].created_at == received
        assert events[0].author is None
        assert events[0].severity is None

    def test_parses_leveled_log_and_scans_message_for_task(self):
        """第二种模式：<timestamp> <SEVERITY> <author>: <message>"""
        log = VKLogIngest(content="2024-05-01T09:10:11Z WARN deployer: Rolling back bug#77")

        events = parse_vk_log(log)

        assert len(events) == 1
        assert events[0].author == "deployer"
        assert events[0].severity == "WARN"
        assert events[0].message == "Rolling back bug#77"
        assert events[0].task_id == "TASK-77"

    def test_blank_lines_are_dropped(self):
        """多行内容按任意换行切分，空行丢弃"""
        log = VKLogIngest(content="first line\r\n\r\n   \nsecond line\rthird line\n")

        events = parse_vk_log(log)

        assert [e.message for e in events] == ["first line", "second line", "third line"]

    def test_missing_timestamp_uses_current_time(self):
        """无时间戳也无接收时间时使用当前时间"""
        before = datetime.now(UTC)
        events = parse_vk_log(VKLogIngest(content="plain message"))
        after = datetime.now(UTC)

        assert before <= events[0].created_at <= after

    def test_processed_task_hash_is_not_a_task_token(self):
        """"task #42" 中间有空格，不构成任务标识"""
        events = parse_vk_log(
            VKLogIngest(content="[2024-06-20T12:00:00Z] bot|INFO: processed task #42")
        )

        assert events[0].task_id is None
        assert events[0].message == "processed task #42"


class TestMatchers:
    """匹配器顺序与兜底"""

    def test_first_matching_pattern_wins(self):
        match = match_log_line("[2024-05-01] ci: ok")
        assert match.author == "ci"
        assert match.timestamp == "2024-05-01"

    def test_fallback_matcher_keeps_whole_line(self):
        match = match_log_line("no structure here")
        assert match.message == "no structure here"
        assert match.timestamp is None

    def test_matcher_list_is_ordered(self):
        assert [m.name for m in LOG_MATCHERS] == ["bracketed", "leveled"]

    def test_extract_task_id_variants(self):
        assert extract_task_id("see ISSUE-512") == "TASK-512"
        assert extract_task_id("fixes Bug#9001") == "TASK-9001"
        assert extract_task_id("TASK-1") is None


class TestLogIdentity:
    """日志行确定性标识"""

    def test_same_line_same_identity(self):
        line = "[2024-06-20T12:00:00Z] bot|INFO: processed task #42"
        assert log_identity(line) == log_identity(line)
        assert log_identity(f"  {line}  ") == log_identity(line)

    def test_different_timestamp_different_identity(self):
        a = log_identity("[2024-06-20T12:00:00Z] bot|INFO: done")
        b = log_identity("[2024-06-20T12:00:01Z] bot|INFO: done")
        assert a != b

    def test_identity_ignores_author_prefix(self):
        """标识只取时间戳与去前缀后的消息"""
        a = log_identity("[2024-06-20T12:00:00Z] bot|INFO: done")
        b = log_identity("[2024-06-20T12:00:00Z] other|WARN: done")
        assert a == b

    def test_parsed_event_carries_identity(self):
        line = "[2024-06-20T12:00:00Z] bot|INFO: done"
        events = parse_vk_log(VKLogIngest(content=line))
        assert events[0].identity == log_identity(line)


class TestParseGitDiff:
    """diff 解析"""

    def test_extracts_statistics_for_multiple_files(self):
        captured = datetime(2024, 5, 4, 12, tzinfo=UTC)
        diff = GitDiffIngest(
            content="\n".join(
                [
                    "diff --git a/src/app.py b/src/app.py",
                    "index 123..456 100644",
                    "--- a/src/app.py",
                    "+++ b/src/app.py",
                    "@@",
                    "+value = 1",
                    "-value = 0",
                    "diff --git a/src/util.py b/src/util.py",
                    "--- a/src/util.py",
                    "+++ b/src/util.py",
                    "+UTIL = True",
                    "-HELPER = False",
                ]
            ),
            captured_at=captured,
        )

        parsed = parse_git_diff(diff)

        assert parsed == [
            ParsedGitDiff(file_path="src/app.py", additions=1, deletions=1, created_at=captured),
            ParsedGitDiff(file_path="src/util.py", additions=1, deletions=1, created_at=captured),
        ]

    def test_fallback_file_from_plus_header(self):
        diff = GitDiffIngest(
            content="\n".join(
                ["@@", "+++ new-file.py", "+print('hello')", "-print('bye')"]
            )
        )

        parsed = parse_git_diff(diff)

        assert len(parsed) == 1
        assert parsed[0].file_path == "new-file.py"
        assert (parsed[0].additions, parsed[0].deletions) == (1, 1)

    def test_untracked_when_no_filename_hints(self):
        parsed = parse_git_diff(GitDiffIngest(content="+added line\n-removed line"))

        assert len(parsed) == 1
        assert parsed[0].file_path == "untracked"
        assert (parsed[0].additions, parsed[0].deletions) == (1, 1)

    def test_empty_diff_yields_nothing(self):
        assert parse_git_diff(GitDiffIngest(content="  \n")) == []

    def test_new_side_path_preferred(self):
        parsed = parse_git_diff(
            GitDiffIngest(content="diff --git a/old.py b/new.py\n+x = 1\n")
        )
        assert parsed[0].file_path == "new.py"


class TestDigestEventBuilders:
    """DigestEvent 构建"""

    def test_vk_error_becomes_incident(self):
        created = datetime(2024, 5, 5, 1, 2, 3, tzinfo=UTC)
        events = to_digest_events_from_vk(
            [
                ParsedVKEvent(
                    message="Build failed",
                    created_at=created,
                    author="Alice",
                    severity="ERROR",
                    task_id="TASK-1",
                    identity="id-1",
                )
            ],
            "vk",
        )

        assert len(events) == 1
        event = events[0]
        assert event.id == "id-1"
        assert event.type == EventKind.INCIDENT
        assert event.source == "vk"
        assert event.message == "Build failed"
        assert event.created_at == created
        assert event.task_id == "TASK-1"
        assert event.metadata == {
            "author": "Alice",
            "severity": "error",
            "raw_severity": "ERROR",
            "derived_task_id": "TASK-1",
        }

    def test_vk_info_becomes_vk_log(self):
        events = to_digest_events_from_vk(
            [
                ParsedVKEvent(
                    message="ok",
                    created_at=datetime(2024, 5, 5, tzinfo=UTC),
                    severity="INFO",
                    identity="id-2",
                )
            ],
            "agent.log",
        )
        assert events[0].type == EventKind.VK_LOG
        assert events[0].task_id is None

    def test_diff_event_shape(self):
        created = datetime(2024, 5, 5, 1, 2, 3, tzinfo=UTC)
        events = to_digest_events_from_diff(
            [ParsedGitDiff(file_path="src/app.py", additions=5, deletions=2, created_at=created)],
            repository="repo",
            branch="main",
            commit="abc123",
        )

        assert len(events) == 1
        event = events[0]
        assert event.type == EventKind.GIT_DIFF
        assert event.source == "repo"
        assert event.message == "src/app.py expansion (+5/-2)"
        assert event.metadata == {
            "file_path": "src/app.py",
            "additions": 5,
            "deletions": 2,
            "branch": "main",
            "commit": "abc123",
        }

    def test_diff_event_id_is_stable_per_commit_and_file(self):
        parsed = [
            ParsedGitDiff(
                file_path="a.py",
                additions=1,
                deletions=0,
                created_at=datetime(2024, 1, 1, tzinfo=UTC),
            )
        ]
        first = to_digest_events_from_diff(parsed, commit="abc")
        second = to_digest_events_from_diff(parsed, commit="abc")
        anonymous = to_digest_events_from_diff(parsed)

        assert first[0].id == second[0].id
        assert anonymous[0].id != first[0].id
        assert anonymous[0].source == "unknown"

    def test_direction_wording(self):
        created = datetime(2024, 1, 1, tzinfo=UTC)
        shrink = ParsedGitDiff(file_path="f", additions=1, deletions=3, created_at=created)
        tie = ParsedGitDiff(file_path="f", additions=2, deletions=2, created_at=created)

        assert format_diff_message(shrink) == "f shrink (+1/-3)"
        assert format_diff_message(tie) == "f expansion (+2/-2)"


class TestOutOfRangeTimestamps:
    """换算到 UTC 后超出 datetime 范围的时间戳"""

    def test_out_of_range_timestamp_falls_back_to_received_at(self):
        received = datetime(2024, 6, 20, 12, tzinfo=UTC)
        log = VKLogIngest(
            content="[0001-01-01T00:00:00+01:00] bot: hi\n[9999-12-31T23:59:59-01:00] bot: bye",
            received_at=received,
        )

        events = parse_vk_log(log)

        assert [e.message for e in events] == ["hi", "bye"]
        assert [e.created_at for e in events] == [received, received]
