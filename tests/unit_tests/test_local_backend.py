"""
Local backend tests: JSON/text rendering, output paths and the shared level gate.
"""

from __future__ import annotations

import json
import threading

import pytest

from cloudlogging import ConfigurationError, Level, new_local_logger, new_logger, with_level, with_local
from cloudlogging.backends.local import AtomicLevel, LocalBackend
from cloudlogging.formatters import TextRenderer


def read_json_lines(path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines() if line]


class TestJsonEncoding:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "app.log"
        log = new_logger(with_local(encoding="json", output_path=str(path)))
        log.info("msg", "a", "b")
        log.close()

        (record,) = read_json_lines(path)
        assert record["level"] == "info"
        assert "msg" in record["message"]
        assert record["a"] == "b"
        assert "timestamp" in record
        assert list(record)[:3] == ["timestamp", "level", "message"]

    def test_common_and_call_site_fields_are_flattened(self, tmp_path):
        path = tmp_path / "app.log"
        root = new_logger(with_local(encoding="json", output_path=str(path)))
        log = root.with_additional_fields(service="billing", attempt=1)
        log.warning("retry", attempt=2, ok=False)
        root.error("plain")
        root.close()

        first, second = read_json_lines(path)
        assert first == {**first, "level": "warning", "service": "billing", "attempt": 2, "ok": False}
        assert "service" not in second
        assert second["level"] == "error"

    def test_non_string_payload_is_rendered(self, tmp_path):
        path = tmp_path / "app.log"
        log = new_local_logger(output_path=str(path), encoding="json")
        log.info({"nested": [1, 2]})
        log.close()

        (record,) = read_json_lines(path)
        assert record["message"] == str({"nested": [1, 2]})

    def test_formatted_entries_keep_common_fields(self, tmp_path):
        path = tmp_path / "app.log"
        log = new_local_logger(output_path=str(path), encoding="json").with_additional_fields(k="v")
        log.infof("count=%d", 3)
        log.close()

        (record,) = read_json_lines(path)
        assert record["message"] == "count=3"
        assert record["k"] == "v"

    def test_fatal_level_name(self, tmp_path):
        path = tmp_path / "app.log"
        log = new_local_logger(output_path=str(path), encoding="json")
        with pytest.raises(SystemExit):
            log.fatal("boom")
        log.close()

        (record,) = read_json_lines(path)
        assert record["level"] == "fatal"


class TestFieldKeys:
    def test_keys_named_like_structlog_parameters(self, tmp_path):
        path = tmp_path / "app.log"
        root = new_local_logger(output_path=str(path), encoding="json")
        log = root.with_additional_fields("self", "x", "event_dict", "y")
        log.info("rpc done", "method_name", "GetUser", "status", 200)
        root.close()

        (record,) = read_json_lines(path)
        assert record["message"] == "rpc done"
        assert record["self"] == "x"
        assert record["event_dict"] == "y"
        assert record["method_name"] == "GetUser"
        assert record["status"] == 200

    def test_reserved_keys_are_prefixed_not_overwritten(self, tmp_path):
        path = tmp_path / "app.log"
        log = new_local_logger(output_path=str(path), encoding="json").with_additional_fields(timestamp="t0")
        log.info("payload", "message", "user text", "level", "L7", "event", "signup")
        log.close()

        (record,) = read_json_lines(path)
        assert record["message"] == "payload"
        assert record["level"] == "info"
        assert record["timestamp"] != "t0"
        assert record["fields.message"] == "user text"
        assert record["fields.level"] == "L7"
        assert record["fields.event"] == "signup"
        assert record["fields.timestamp"] == "t0"

    def test_reserved_keys_in_text_output(self, capsys):
        log = new_local_logger()
        log.info("payload", "message", "user text")
        assert capsys.readouterr().out.strip().endswith("payload fields.message=user text")


class TestTextEncoding:
    def test_writes_to_stdout_by_default(self, capsys):
        log = new_local_logger()
        log.debugf("Test A=%s,B=%s", 1, 2)
        log.info("request handled", "status", 200)

        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0].endswith("Test A=1,B=2")
        assert "| DEBUG |" in lines[0].replace("  ", "")
        assert lines[1].endswith("request handled status=200")

    def test_renderer_without_color(self):
        renderer = TextRenderer(use_color=False)
        line = renderer(
            None,
            "info",
            {"timestamp": "2024-01-01T00:00:00+00:00", "level": "info", "message": "hi", "k": "v"},
        )
        assert line.endswith("|    INFO | hi k=v")
        assert "\033[" not in line

    def test_renderer_with_color(self):
        line = TextRenderer(use_color=True)(None, "error", {"level": "error", "message": "bad"})
        assert "\033[31m" in line


class TestOutputPaths:
    def test_unopenable_path_is_a_configuration_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        with pytest.raises(ConfigurationError):
            LocalBackend(output_path=str(blocker / "app.log"))

    def test_unopenable_error_path_closes_output(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        with pytest.raises(ConfigurationError):
            LocalBackend(output_path=str(tmp_path / "ok.log"), error_output_path=str(blocker / "err.log"))

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "app.log"
        backend = LocalBackend(output_path=str(path))
        backend.emit(Level.INFO, "hello", {})
        backend.close()
        assert "hello" in path.read_text()

    def test_unknown_encoding(self):
        with pytest.raises(ConfigurationError):
            LocalBackend(encoding="xml")  # type: ignore[arg-type]


class TestLevelGate:
    def test_set_level_is_shared_by_bound_handles(self, tmp_path):
        path = tmp_path / "app.log"
        backend = LocalBackend(level=Level.DEBUG, output_path=str(path), encoding="json")
        child = backend.bind({"child": True})

        backend.set_level(Level.ERROR)
        child.emit(Level.INFO, "hidden", {})
        child.emit(Level.ERROR, "shown", {})
        backend.close()

        (record,) = read_json_lines(path)
        assert record["message"] == "shown"
        assert record["child"] is True
        assert child.level == Level.ERROR

    def test_bind_does_not_touch_parent(self):
        backend = LocalBackend()
        child = backend.bind({"a": 1}).bind({"b": 2})
        assert backend.bound_fields == {}
        assert child.bound_fields == {"a": 1, "b": 2}

    def test_logger_level_option_reaches_local_gate(self, tmp_path):
        log = new_logger(with_level("warning"), with_local(output_path=str(tmp_path / "app.log")))
        (backend,) = log.backends
        assert backend.level == Level.WARNING

    def test_atomic_level_under_concurrent_readers(self):
        level = AtomicLevel(Level.DEBUG)
        seen: set[bool] = set()

        def read():
            for _ in range(1000):
                seen.add(level.enabled(Level.INFO))

        threads = [threading.Thread(target=read) for _ in range(4)]
        for thread in threads:
            thread.start()
        level.set("error")
        for thread in threads:
            thread.join()

        assert level.level == Level.ERROR
        assert not level.enabled(Level.INFO)
        assert seen <= {True, False}


class TestConcurrentWrites:
    def test_lines_are_not_interleaved(self, tmp_path):
        path = tmp_path / "app.log"
        log = new_local_logger(output_path=str(path), encoding="json")

        def worker(n: int):
            child = log.with_additional_fields(worker=n)
            for i in range(50):
                child.info("tick", i=i)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        log.close()

        records = read_json_lines(path)
        assert len(records) == 200
        for n in range(4):
            assert [r["i"] for r in records if r["worker"] == n] == list(range(50))
