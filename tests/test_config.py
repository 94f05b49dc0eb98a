import os
import tempfile
import unittest
from unittest.mock import patch

import support  # noqa: F401

from utils import logger
from utils.config import DEFAULT_API_BASE_URL, Settings


class SettingsTestCase(unittest.TestCase):
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        settings = Settings.from_env(dotenv=False)
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.api_base_url, DEFAULT_API_BASE_URL)
        self.assertFalse(settings.google_enabled)

    @patch.dict(
        os.environ,
        {
            "PUMA_API_BASE_URL": "https://portal.example.com/",
            "PUMA_API_TIMEOUT": "5",
            "PUMA_STORAGE_PATH": "/tmp/portal.sqlite",
            "PUMA_GOOGLE_CLIENT_ID": "client-id",
            "PUMA_ORDERS_REFRESH_SECONDS": "15",
            "PUMA_SESSION_REFRESH_SECONDS": " ",
            "PUMA_DOWNLOAD_DIR": "~/Downloads",
        },
        clear=True,
    )
    def test_overrides(self):
        settings = Settings.from_env(dotenv=False)
        self.assertEqual(settings.api_base_url, "https://portal.example.com")
        self.assertEqual(settings.api_timeout, 5.0)
        self.assertEqual(settings.storage_path, "/tmp/portal.sqlite")
        self.assertTrue(settings.google_enabled)
        self.assertEqual(settings.orders_refresh_interval, 15)
        self.assertEqual(settings.session_refresh_interval, 300)
        self.assertEqual(settings.download_dir, "~/Downloads")

    @patch.dict(os.environ, {"PUMA_ORDERS_REFRESH_SECONDS": "soon"}, clear=True)
    def test_bad_integer(self):
        with self.assertRaises(ValueError) as ctx:
            Settings.from_env(dotenv=False)
        self.assertIn("PUMA_ORDERS_REFRESH_SECONDS", str(ctx.exception))


class LogFileTestCase(unittest.TestCase):
    def test_log_file_is_appended_and_closed(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "logs", "portal.log")
            with patch.dict(os.environ, {logger.LOG_FILE_ENV: path}), patch.object(
                logger, "_log_file", None
            ):
                console = logger._log_console()
                console.print("portal started")
                stream = console.file
                logger.close_log_file()
                logger.close_log_file()

                self.assertTrue(stream.closed)
                self.assertIsNone(logger._log_file)
            with open(path, encoding="utf-8") as f:
                self.assertIn("portal started", f.read())

    @patch.dict(os.environ, {}, clear=True)
    def test_no_log_file_by_default(self):
        self.assertIsNone(logger._log_console())


if __name__ == "__main__":
    unittest.main()
