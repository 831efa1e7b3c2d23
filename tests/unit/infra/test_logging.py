"""structlog 설정 — JSON 출력, extra 필드, 토큰 마스킹."""

import json
import logging

import pytest
import structlog

from rancher_platform.infra.observability.logging import setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def _last_json_line(capsys) -> dict:
    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    return json.loads(lines[-1])


class TestSetupLogging:
    def test_json_with_context_and_extra(self, capsys):
        setup_logging("rancher-platform", version="1.2.3", environment="staging")
        logging.getLogger("rancher_platform.test").info("Cycle %d done", 7, extra={"updated": 3})

        event = _last_json_line(capsys)
        assert event["event"] == "Cycle 7 done"
        assert event["level"] == "info"
        assert event["service"] == "rancher-platform"
        assert event["version"] == "1.2.3"
        assert event["environment"] == "staging"
        assert event["updated"] == 3

    def test_token_redacted(self, capsys):
        setup_logging()
        logging.getLogger("rancher_platform.test").warning("Rancher call", extra={"token": "secret-token"})
        event = _last_json_line(capsys)
        assert event["token"] == "***"

    def test_single_handler_on_repeat(self):
        setup_logging()
        setup_logging()
        names = [h.get_name() for h in logging.getLogger().handlers]
        assert names.count("rancher-platform") == 1

    def test_uvicorn_access_silenced(self):
        setup_logging(log_level="DEBUG")
        assert not logging.getLogger("uvicorn.access").isEnabledFor(logging.CRITICAL)
