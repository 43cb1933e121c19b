"""Tests for the status logger and its logging bridge."""

import logging
from datetime import datetime

from logger import LogEntry, StatusLogger, StatusLogHandler, attach_to_logging


class TestStatusLogger:
    def test_levels_and_recent_logs(self):
        status = StatusLogger()
        status.log_info("one")
        status.log_warning("two")
        status.log_error("three")
        assert [(e.level, e.message) for e in status.get_recent_logs(2)] == [("WARNING", "two"), ("ERROR", "three")]

    def test_debug_dropped_unless_verbose(self):
        status = StatusLogger()
        status.log_debug("hidden")
        assert status.get_all_logs() == []
        status.verbose = True
        status.log_debug("shown")
        assert status.get_all_logs()[0].level == "DEBUG"

    def test_history_is_bounded(self):
        status = StatusLogger(max_entries=3)
        for i in range(5):
            status.log_info(str(i))
        assert [e.message for e in status.get_all_logs()] == ["2", "3", "4"]

    def test_update_status(self):
        status = StatusLogger()
        status.update_status("Recording")
        assert status.get_current_status() == "Recording"
        assert status.get_recent_logs(1)[0].message == "Recording"

    def test_listeners(self):
        status = StatusLogger()
        seen = []
        status.add_listener(seen.append)
        status.log_info("hello")
        status.remove_listener(seen.append)
        status.log_info("ignored")
        assert [e.message for e in seen] == ["hello"]

    def test_unknown_level_becomes_info(self):
        status = StatusLogger()
        status.log("x", "trace")
        assert status.get_all_logs()[0].level == "INFO"

    def test_daily_log_file(self, tmp_path):
        status = StatusLogger(log_dir=tmp_path)
        status.log_info("written")
        assert status.log_file.name == f"macro-sequencer_{datetime.now():%Y-%m-%d}.log"
        content = status.log_file.read_text(encoding="utf-8")
        assert content.rstrip().endswith("[INFO] written")

    def test_export(self, tmp_path):
        status = StatusLogger()
        status.log_error("boom")
        target = tmp_path / "export.txt"
        assert status.export_logs_to_file(target) is True
        assert "[ERROR] boom" in target.read_text(encoding="utf-8")

    def test_clear(self):
        status = StatusLogger()
        status.log_info("a")
        status.clear_logs()
        assert [e.message for e in status.get_all_logs()] == ["Log history cleared"]


class TestLogEntry:
    def test_formats(self):
        entry = LogEntry(datetime(2024, 1, 2, 3, 4, 5, 678000), "msg", "WARNING")
        assert str(entry) == "[03:04:05] WARNING: msg"
        assert entry.to_file_line() == "2024-01-02 03:04:05.678 [WARNING] msg"


class TestStatusLogHandler:
    def test_routes_records(self):
        status = StatusLogger()
        log = logging.getLogger("tests.status_handler")
        log.setLevel(logging.DEBUG)
        handler = StatusLogHandler(status)
        log.addHandler(handler)
        try:
            log.warning("careful %s", "now")
            log.error("failed")
        finally:
            log.removeHandler(handler)
        assert [(e.level, e.message) for e in status.get_all_logs()] == [
            ("WARNING", "careful now"), ("ERROR", "failed")]

    def test_attach_to_logging(self):
        status = StatusLogger()
        handler = attach_to_logging(status, ["tests.attached"])
        try:
            logging.getLogger("tests.attached.child").info("from core")
        finally:
            logging.getLogger("tests.attached").removeHandler(handler)
        assert status.get_all_logs()[-1].message == "from core"
