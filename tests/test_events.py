"""
Tests for the NDJSON event log.
"""

from wskproj.events import EventLog, EventTypes, project_dir


class TestEventLog:
    """Test event persistence."""

    def test_emit_and_read(self, tmp_path):
        log = EventLog("EXT_PROJECT", home=tmp_path)

        log.emit(EventTypes.UNDEPLOY_START, {"preview": False})
        log.emit(EventTypes.DELETED, {"entity": "package:ext"})

        events = log.read()
        assert [e["type"] for e in events] == [EventTypes.UNDEPLOY_START, EventTypes.DELETED]
        assert events[1]["data"] == {"entity": "package:ext"}
        assert events[0]["project"] == "EXT_PROJECT"
        assert log.last()["type"] == EventTypes.DELETED

    def test_empty_log(self, tmp_path):
        log = EventLog("nothing", home=tmp_path)
        assert log.read() == []
        assert log.last() is None

    def test_malformed_lines_are_skipped(self, tmp_path):
        log = EventLog("p", home=tmp_path)
        log.emit(EventTypes.ERROR, {"error": "boom"})
        with open(log.path, "a") as f:
            f.write("{not json\n")

        assert len(log.read()) == 1

    def test_unsafe_project_names(self, tmp_path):
        assert project_dir("../a b", home=tmp_path) == tmp_path / ".._a_b"
        assert project_dir("", home=tmp_path) == tmp_path / "_"
