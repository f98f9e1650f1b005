"""采集器日志配置测试

测试内容：
1. json 模式输出可解析的单行 JSON
2. 日志级别生效，第三方 logger 不低于 WARNING
3. 参数缺省时读取环境变量
"""

import json
import logging

import pytest
import structlog
from devpilot.collector.logging_config import setup_logging


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    monkeypatch.delenv("DEVPILOT_LOG_FORMAT", raising=False)
    monkeypatch.delenv("DEVPILOT_LOG_LEVEL", raising=False)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    noisy = {name: logging.getLogger(name).level for name in ("aiosqlite", "asyncio")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, value in noisy.items():
        logging.getLogger(name).setLevel(value)
    structlog.reset_defaults()


class TestSetupLogging:
    """setup_logging"""

    def test_json_format_renders_event(self, capsys):
        setup_logging("json", "INFO")

        structlog.get_logger("devpilot.test").info("collector_started", workspace="w")

        lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
        record = json.loads(lines[-1])
        assert record["event"] == "collector_started"
        assert record["workspace"] == "w"
        assert record["level"] == "info"
        assert record["timestamp"].endswith("Z")

    def test_level_filters_lower_records(self, capsys):
        setup_logging("json", "WARNING")

        structlog.get_logger("devpilot.test").info("collector_poll_completed")

        assert capsys.readouterr().err == ""

    def test_noisy_loggers_stay_at_warning(self):
        setup_logging("dev", "DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_environment_fallback(self, monkeypatch, capsys):
        monkeypatch.setenv("DEVPILOT_LOG_FORMAT", "json")
        monkeypatch.setenv("DEVPILOT_LOG_LEVEL", "debug")

        setup_logging()
        structlog.get_logger("devpilot.test").debug("cursor_loaded")

        assert logging.getLogger().level == logging.DEBUG
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "cursor_loaded"

    def test_unknown_level_defaults_to_info(self):
        setup_logging("dev", "chatty")

        assert logging.getLogger().level == logging.INFO
