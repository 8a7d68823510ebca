"""Tests for status event rendering."""

import logging
from typing import get_args

import pytest

from apps.cli.reporter import StatusReporter
from hotrun.core.lifecycle.types import StatusType


@pytest.fixture
def reporter():
    return StatusReporter(logging.getLogger("hotrun.test"))


class TestStatusReporter:
    @pytest.mark.parametrize("t", ["BUILD_FAILED", "KILL_FAILED", "PROCESS_START_FAILED", "WATCH_ERROR"])
    def test_errors_logged_as_errors(self, reporter, t):
        assert reporter.level_for({"type": t, "error": "x"}) == logging.ERROR

    @pytest.mark.parametrize("t", get_args(StatusType))
    def test_every_status_type_has_a_message(self, reporter, t):
        assert not reporter.format({"type": t}).startswith(f"{t}:")

    def test_abnormal_exit_is_warning(self, reporter):
        assert reporter.level_for({"type": "PROCESS_EXITED", "returncode": 2}) == logging.WARNING
        assert reporter.level_for({"type": "PROCESS_EXITED", "returncode": 0}) == logging.INFO

    def test_messages(self, reporter):
        assert reporter.format({"type": "CHANGED", "path": "/p/main.go"}) == "File [/p/main.go] has changed!"
        assert reporter.format({"type": "BUILD_SUCCEEDED"}) == "BUILD SUCCESS"
        assert "status 2" in reporter.format({"type": "BUILD_FAILED", "error": "build exited with status 2"})
        assert "already exited" in reporter.format({"type": "PROCESS_STOPPED", "pid": 7, "outcome": "ALREADY_EXITED"})
        assert "pid 9" in reporter.format({"type": "PROCESS_STARTED", "pid": 9, "argv": ["./app"]})
        assert reporter.format({"type": "WATCH_ERROR", "error": "gone", "path": "/p/x"}) == "WATCH ERROR: gone (/p/x)"

    def test_handle_logs(self, reporter, caplog):
        with caplog.at_level(logging.INFO, logger="hotrun.test"):
            reporter.handle({"type": "BUILD_FAILED", "error": "exit 1"})
            reporter.handle({"type": "WATCHING", "path": "/p", "dirs": 3})

        assert [r.levelno for r in caplog.records] == [logging.ERROR, logging.INFO]
        assert "Watching [/p] (3 directories)" in caplog.text
