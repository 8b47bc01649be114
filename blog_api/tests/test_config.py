import os
import unittest
from unittest.mock import patch

from blog_api.config import Settings
from blog_api.db import InMemoryPostStore, SqlPostStore
from blog_api.dependencies import build_post_store
from blog_api.errors import ConfigurationError


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)
        self.assertIsNone(settings.database_url)
        self.assertEqual(settings.port, 3000)
        self.assertEqual(settings.api_prefix, "/api")
        self.assertFalse(settings.use_in_memory_backends)

    def test_reads_environment(self):
        env = {
            "DATABASE_URL": "sqlite+pysqlite:///:memory:",
            "PORT": "8080",
            "ALLOWED_ORIGINS": '["https://blog.example"]',
            "POSTBOARD_USE_IN_MEMORY_BACKENDS": "true",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.database_url, "sqlite+pysqlite:///:memory:")
        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.allowed_origins, ["https://blog.example"])
        self.assertTrue(settings.use_in_memory_backends)

    def test_accepts_mongodb_uri_name(self):
        with patch.dict(os.environ, {"MONGODB_URI": "sqlite+pysqlite:///:memory:"}, clear=True):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.database_url, "sqlite+pysqlite:///:memory:")


class BuildPostStoreTests(unittest.TestCase):
    def test_missing_connection_string_is_fatal(self):
        settings = Settings(_env_file=None, database_url=None, use_in_memory_backends=False)
        with self.assertRaises(ConfigurationError):
            build_post_store(settings)

    def test_in_memory_backend(self):
        settings = Settings(_env_file=None, use_in_memory_backends=True)
        self.assertIsInstance(build_post_store(settings), InMemoryPostStore)

    def test_sql_backend(self):
        settings = Settings(
            _env_file=None,
            database_url="sqlite+pysqlite:///:memory:",
            use_in_memory_backends=False,
        )
        store = build_post_store(settings)
        try:
            self.assertIsInstance(store, SqlPostStore)
            self.assertTrue(store.ping())
        finally:
            store.close()


if __name__ == "__main__":
    unittest.main()
