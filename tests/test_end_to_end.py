"""
End-to-end run of service plus console, and the process entry point.
"""

import io
import signal
import time
from unittest.mock import MagicMock, patch

from apps.console.console import CommandConsole
from apps.console.line_reader import CancellableLineReader
from apps.console.main import main
from packages.core.keepalive.service import KeepAliveService
from packages.core.keepalive.types import KeepAliveMethod

from conftest import BlockingStream, FakePlatform, Recorder, no_sleep_strategy


class TestScenario:

    def test_start_pause_resume_stop(self):
        """Ticks while active, PAUSED in status, silence after stop."""
        recorder = Recorder()
        stream = BlockingStream()
        out = io.StringIO()
        service = KeepAliveService(platform=FakePlatform(), strategy_factory=no_sleep_strategy)
        service.subscribe(recorder)
        console = CommandConsole(service, reader=CancellableLineReader(stream), out=out)

        with patch("apps.console.console.power_source_summary", return_value=None):
            console.start()
            service.start(KeepAliveMethod.HYBRID, 1)
            try:
                assert recorder.wait_for("System kept awake using Hybrid", timeout=3.0, count=2)

                service.pause()
                console.process_command("status")
                assert "Status: RUNNING (PAUSED)" in out.getvalue()

                service.resume()
                service.stop()
                assert service.join(timeout=2.0)
            finally:
                console.stop()
                stream.release()

        seen = len(recorder.messages)
        time.sleep(2.0)
        assert len(recorder.messages) == seen


class TestMain:

    def _run(self, argv, capsys):
        service = MagicMock()
        console = MagicMock()
        console.wait_for_exit.return_value = True

        with patch("apps.console.main.ensure_app_dirs"), \
                patch("apps.console.main.setup_logging"), \
                patch("apps.console.main.signal.signal") as install_handler, \
                patch("apps.console.main.default_platform", return_value=FakePlatform()), \
                patch("apps.console.main.KeepAliveService", return_value=service), \
                patch("apps.console.main.CommandConsole", return_value=console):
            code = main(argv)

        return code, service, console, install_handler, capsys.readouterr().out

    def test_starts_with_parsed_arguments(self, capsys):
        code, service, console, install_handler, out = self._run(["MouseJiggle", "5"], capsys)

        assert code == 0
        service.start.assert_called_once_with(KeepAliveMethod.MOUSE_JIGGLE, 5)
        console.start.assert_called_once_with()
        install_handler.assert_called_once()
        assert "=== Anti-Idle Utility ===" in out

    def test_cleans_up_after_console_exits(self, capsys):
        _, service, console, _, out = self._run([], capsys)

        service.start.assert_called_once_with(KeepAliveMethod.HYBRID, 30)
        service.stop.assert_called_once_with()
        console.stop.assert_called_once_with()
        assert out.rstrip().endswith("Program terminated.")

    def test_reports_argument_fallbacks(self, capsys):
        _, service, _, _, out = self._run(["badmethod", "0"], capsys)

        service.start.assert_called_once_with(KeepAliveMethod.HYBRID, 30)
        assert "Unknown method 'badmethod', using Hybrid." in out
        assert "Invalid interval '0', using 30 seconds." in out

    def test_interrupt_handler_stops_console_then_service_then_exits(self, capsys):
        """Ctrl+C stops both loops in order and leaves with code 0."""
        _, service, console, install_handler, _ = self._run([], capsys)
        assert install_handler.call_args[0][0] == signal.SIGINT
        handler = install_handler.call_args[0][1]

        order = []
        console.stop.reset_mock()
        service.stop.reset_mock()
        console.stop.side_effect = lambda: order.append("console.stop")
        service.stop.side_effect = lambda: order.append("service.stop")

        with patch("apps.console.main.os._exit", side_effect=lambda code: order.append(("exit", code))), \
                patch("apps.console.main.logging.shutdown"):
            handler(signal.SIGINT, None)

        assert order == ["console.stop", "service.stop", ("exit", 0)]
        assert "Shutting down gracefully..." in capsys.readouterr().out
