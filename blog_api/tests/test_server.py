import os
import signal
import unittest
from unittest.mock import MagicMock, patch

import uvicorn

from blog_api.config import Settings, get_settings
from blog_api.server import GracefulServer, _force_exit, main


class GracefulServerTests(unittest.TestCase):
    def setUp(self):
        self.server = GracefulServer(uvicorn.Config(app=MagicMock()), grace_seconds=5.0)

    @patch("blog_api.server.Timer")
    def test_first_signal_arms_force_exit_timer(self, timer_cls):
        self.server.handle_exit(signal.SIGTERM, None)

        timer_cls.assert_called_once_with(5.0, _force_exit, args=(5.0,))
        timer_cls.return_value.start.assert_called_once()
        self.assertTrue(self.server.should_exit)

        self.server.handle_exit(signal.SIGTERM, None)
        timer_cls.assert_called_once()

        self.server.cancel_force_exit()
        timer_cls.return_value.cancel.assert_called_once()

    @patch("blog_api.server.os._exit")
    def test_force_exit_terminates_process(self, exit_mock):
        _force_exit(5.0)
        exit_mock.assert_called_once_with(1)


class MainTests(unittest.TestCase):
    @patch("blog_api.server.logging.basicConfig")
    @patch("blog_api.server.get_settings")
    def test_missing_connection_string_exits_with_error(self, mock_settings, _basic_config):
        mock_settings.return_value = Settings(
            _env_file=None, database_url=None, use_in_memory_backends=False
        )
        self.assertEqual(main([]), 1)

    @patch("blog_api.server.logging.basicConfig")
    @patch("blog_api.server.GracefulServer")
    @patch("blog_api.server.get_settings")
    def test_runs_server_with_cli_overrides(self, mock_settings, server_cls, _basic_config):
        mock_settings.return_value = Settings(
            _env_file=None, use_in_memory_backends=True, shutdown_grace_seconds=3
        )
        server_cls.return_value.started = True

        self.assertEqual(main(["--host", "127.0.0.1", "--port", "8123"]), 0)

        config, = server_cls.call_args.args
        self.assertEqual(config.host, "127.0.0.1")
        self.assertEqual(config.port, 8123)
        self.assertEqual(server_cls.call_args.kwargs, {"grace_seconds": 3.0})
        server_cls.return_value.run.assert_called_once()
        server_cls.return_value.cancel_force_exit.assert_called_once()

    @patch("blog_api.server.logging.basicConfig")
    @patch("blog_api.server.GracefulServer")
    @patch("blog_api.server.get_settings")
    def test_fractional_grace_period_leaves_requests_running(self, mock_settings, server_cls, _basic_config):
        mock_settings.return_value = Settings(
            _env_file=None, use_in_memory_backends=True, shutdown_grace_seconds=0.5
        )
        server_cls.return_value.started = True

        self.assertEqual(main([]), 0)

        config, = server_cls.call_args.args
        # uvicorn must not cancel in-flight requests before the grace period ends
        self.assertIsNone(config.timeout_graceful_shutdown)
        self.assertEqual(server_cls.call_args.kwargs, {"grace_seconds": 0.5})

    @patch("blog_api.server.Timer")
    def test_fractional_grace_period_arms_timer_with_exact_value(self, timer_cls):
        server = GracefulServer(uvicorn.Config(app=MagicMock()), grace_seconds=0.5)
        server.handle_exit(signal.SIGTERM, None)
        timer_cls.assert_called_once_with(0.5, _force_exit, args=(0.5,))

    @patch("blog_api.server.logging.basicConfig")
    @patch("blog_api.server.GracefulServer")
    def test_malformed_environment_exits_with_error(self, server_cls, _basic_config):
        get_settings.cache_clear()
        self.addCleanup(get_settings.cache_clear)
        env = {"ALLOWED_ORIGINS": "http://a.example,http://b.example"}
        with patch.dict(os.environ, env):
            self.assertEqual(main([]), 1)
        server_cls.assert_not_called()

    @patch("blog_api.server.logging.basicConfig")
    @patch("blog_api.server.GracefulServer")
    def test_out_of_range_port_exits_with_error(self, server_cls, _basic_config):
        get_settings.cache_clear()
        self.addCleanup(get_settings.cache_clear)
        with patch.dict(os.environ, {"PORT": "70000"}):
            self.assertEqual(main([]), 1)
        server_cls.assert_not_called()


if __name__ == "__main__":
    unittest.main()
