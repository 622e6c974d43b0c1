import logging

from strata.diagnostics import (
    ConsoleDiagnosticListener,
    LoaderDiagnostics,
    LoaderEvent,
    LoaderEventType,
)
from strata.testing import RecordingListener


class TestLoaderDiagnostics:

    def test_emit_without_listeners(self):
        diagnostics = LoaderDiagnostics()
        assert diagnostics.enabled is False
        diagnostics.emit(LoaderEventType.SESSION_START, component="a")

    def test_emit_to_listeners(self):
        diagnostics = LoaderDiagnostics()
        first, second = RecordingListener(), RecordingListener()
        diagnostics.add_listener(first)
        diagnostics.add_listener(second)

        diagnostics.emit(LoaderEventType.RESOLUTION_START, component="db")

        assert diagnostics.enabled is True
        for listener in (first, second):
            [event] = listener.events
            assert event.type is LoaderEventType.RESOLUTION_START
            assert event.component == "db"
            assert event.timestamp > 0

    def test_broken_listener_is_logged(self, caplog):
        class Broken:
            def on_event(self, event):
                raise RuntimeError("listener down")

        diagnostics = LoaderDiagnostics()
        recorder = RecordingListener()
        diagnostics.add_listener(Broken())
        diagnostics.add_listener(recorder)

        with caplog.at_level(logging.ERROR, logger="strata.diagnostics"):
            diagnostics.emit(LoaderEventType.BINDING, component="config")

        assert "listener down" in caplog.text
        assert len(recorder.events) == 1


class TestConsoleDiagnosticListener:

    def test_success_and_failure_messages(self, caplog):
        listener = ConsoleDiagnosticListener()
        with caplog.at_level(logging.DEBUG, logger="strata.diagnostics"):
            listener.on_event(LoaderEvent(LoaderEventType.RESOLUTION_SUCCESS, component="db", duration=0.5))
            listener.on_event(LoaderEvent(LoaderEventType.RESOLUTION_FAILURE, component="db", error=ValueError("x")))

        assert "Set up 'db' in 0.5000s" in caplog.text
        assert "Failed to set up 'db': x" in caplog.text
        assert caplog.records[-1].levelno == logging.ERROR

    def test_respects_level(self, caplog):
        listener = ConsoleDiagnosticListener(log_level=logging.INFO)
        with caplog.at_level(logging.INFO, logger="strata.diagnostics"):
            listener.on_event(LoaderEvent(LoaderEventType.SESSION_START, component="app"))
        assert caplog.records[0].levelno == logging.INFO
        assert "Loading 'app'" in caplog.text
