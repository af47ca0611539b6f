import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from pysqlcopy.config import (
    CopyConfig,
    DatabaseConfig,
    FilterConfig,
    find_config_file,
    load_config,
)


class TestConfig(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = tempfile.TemporaryDirectory()
        self.root = Path(self.directory.name)

    def tearDown(self) -> None:
        self.directory.cleanup()

    def write(self, path: Path, data: object) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_load(self) -> None:
        path = self.write(
            self.root / "config.json",
            {
                "source": {"url": "oracle://system@localhost:1521/FREEPDB1", "password": "secret"},
                "target": {"url": "postgresql://localhost/postgres", "init_sql": "SET search_path TO app"},
                "tables": {"include": ["users", "orders"]},
                "sequences": {"enabled": True, "exclude": ["*"]},
                "batch_size": 1000,
                "truncate": True,
                "post_sql": "@post.sql",
            },
        )
        config = load_config(path)

        self.assertEqual(config.source.url, "oracle://system@localhost:1521/FREEPDB1")
        self.assertEqual(config.source.password, "secret")
        self.assertIsNone(config.source.username)
        self.assertEqual(config.target.init_sql, "SET search_path TO app")
        self.assertFalse(config.target.readonly)
        self.assertEqual(config.batch_size, 1000)
        self.assertTrue(config.truncate)
        self.assertTrue(config.disable_foreign_keys)
        self.assertEqual(config.post_sql, "@post.sql")

        options = config.to_options()
        self.assertEqual(options.tables.order, ("users", "orders"))
        self.assertTrue(options.tables.contains("USERS"))
        self.assertFalse(options.tables.contains("products"))
        self.assertTrue(options.sequences.enabled)
        self.assertTrue(options.sequences.excludes_all)
        self.assertEqual(options.batch_size, 1000)
        self.assertTrue(options.truncate)

    def test_load_invalid(self) -> None:
        path = self.write(self.root / "config.json", {"batch_size": "many"})
        with self.assertRaises(ValueError):
            load_config(path)

    def test_defaults(self) -> None:
        options = CopyConfig().to_options()
        self.assertTrue(options.tables.enabled)
        self.assertFalse(options.sequences.enabled)
        self.assertEqual(options.batch_size, 500)

        self.assertFalse(FilterConfig().to_filter(False).enabled)
        self.assertFalse(FilterConfig(enabled=False).to_filter(True).enabled)

    def test_validate(self) -> None:
        config = CopyConfig(
            source=DatabaseConfig(url="sqlite:///a.db"),
            target=DatabaseConfig(url="sqlite:///b.db"),
        )
        config.validate()

        with self.assertRaises(ValueError):
            CopyConfig(target=DatabaseConfig(url="sqlite:///b.db")).validate()
        with self.assertRaises(ValueError):
            CopyConfig(source=DatabaseConfig(url="sqlite:///a.db")).validate()
        with self.assertRaises(ValueError):
            CopyConfig(
                source=DatabaseConfig(url="sqlite:///a.db"),
                target=DatabaseConfig(url="sqlite:///b.db", readonly=True),
            ).validate()
        with self.assertRaises(ValueError):
            CopyConfig(
                source=DatabaseConfig(url="sqlite:///a.db"),
                target=DatabaseConfig(url="sqlite:///b.db"),
                batch_size=0,
            ).validate()

    def test_find_explicit(self) -> None:
        path = self.write(self.root / "explicit.json", {})
        self.assertEqual(find_config_file(path), path)
        with self.assertRaises(FileNotFoundError):
            find_config_file(self.root / "missing.json")

    @unittest.skipIf(sys.platform == "win32", "home directory is not taken from HOME")
    def test_find_default(self) -> None:
        env = {"XDG_CONFIG_HOME": str(self.root / "xdg"), "HOME": str(self.root / "home")}
        with mock.patch.dict(os.environ, env):
            self.assertIsNone(find_config_file())

            path = self.write(self.root / "home" / ".pysqlcopy" / "config.json", {})
            self.assertEqual(find_config_file(), path)

            path = self.write(self.root / "xdg" / "pysqlcopy" / "config.json", {})
            self.assertEqual(find_config_file(), path)


if __name__ == "__main__":
    unittest.main()
