import contextlib
import json
import os.path
import sqlite3
import tempfile
import unittest
from typing import Optional
from unittest import mock

from click.testing import Result
from typer.testing import CliRunner

from pysqlcopy.__main__ import app


class TestCommandLine(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = tempfile.TemporaryDirectory()
        self.source_path = os.path.join(self.directory.name, "source.db")
        self.target_path = os.path.join(self.directory.name, "target.db")
        self.source_url = f"sqlite:///{self.source_path}"
        self.target_url = f"sqlite:///{self.target_path}"

        for path in (self.source_path, self.target_path):
            with contextlib.closing(sqlite3.connect(path)) as conn:
                conn.execute('CREATE TABLE "parent" ("id" integer PRIMARY KEY, "name" text)')
                conn.execute(
                    'CREATE TABLE "child" ("id" integer PRIMARY KEY, "parent_id" integer REFERENCES "parent" ("id"))'
                )
                conn.execute('CREATE TABLE "DATABASECHANGELOG" ("id" text)')
                if path == self.source_path:
                    conn.executemany('INSERT INTO "parent" VALUES (?, ?)', [(i, f"p{i}") for i in range(5)])
                    conn.executemany('INSERT INTO "child" VALUES (?, ?)', [(i, i % 5) for i in range(7)])
                    conn.execute('INSERT INTO "DATABASECHANGELOG" VALUES (?)', ("v1",))
                conn.commit()

        # logging handlers must not outlive the captured output streams of the runner
        patcher = mock.patch("logging.basicConfig")
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.directory.cleanup()

    def invoke(self, *args: str) -> Result:
        env: dict[str, Optional[str]] = {
            "PYSQLCOPY_SOURCE_URL": None,
            "PYSQLCOPY_TARGET_URL": None,
            "PYSQLCOPY_SOURCE_USERNAME": None,
            "PYSQLCOPY_SOURCE_PASSWORD": None,
            "PYSQLCOPY_TARGET_USERNAME": None,
            "PYSQLCOPY_TARGET_PASSWORD": None,
            "PYSQLCOPY_CONFIG": None,
            "XDG_CONFIG_HOME": self.directory.name,
            "HOME": self.directory.name,
        }
        return CliRunner().invoke(app, list(args), env=env)

    def count(self, table: str) -> int:
        with contextlib.closing(sqlite3.connect(self.target_path)) as conn:
            return conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]

    def test_missing_url(self) -> None:
        result = self.invoke()
        self.assertEqual(result.exit_code, 2)
        self.assertIn("missing source database connection string", result.output)

        result = self.invoke(self.source_url)
        self.assertEqual(result.exit_code, 2)
        self.assertIn("missing target database connection string", result.output)

    def test_unknown_dialect(self) -> None:
        result = self.invoke("db2://localhost/sample", self.target_url)
        self.assertEqual(result.exit_code, 2)
        self.assertIn("db2", result.output)

    def test_invalid_batch_size(self) -> None:
        result = self.invoke(self.source_url, self.target_url, "--batch-size", "0")
        self.assertEqual(result.exit_code, 2)

    def test_copy(self) -> None:
        result = self.invoke(
            self.source_url,
            self.target_url,
            "--include",
            "child,parent",
            "--truncate",
            "--batch-size",
            "2",
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.count("parent"), 5)
        self.assertEqual(self.count("child"), 7)
        self.assertEqual(self.count("DATABASECHANGELOG"), 0)

    def test_exclude_changelog(self) -> None:
        result = self.invoke(self.source_url, self.target_url, "--exclude-changelog")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.count("parent"), 5)
        self.assertEqual(self.count("DATABASECHANGELOG"), 0)

    def test_failure(self) -> None:
        with contextlib.closing(sqlite3.connect(self.target_path)) as conn:
            conn.execute('INSERT INTO "parent" VALUES (0, ?)', ("existing",))
            conn.commit()

        result = self.invoke(self.source_url, self.target_url, "-t", "parent")
        self.assertEqual(result.exit_code, 1)
        self.assertIn("copy aborted", result.output)
        self.assertIn("parent", result.output)

    def test_config_file(self) -> None:
        path = os.path.join(self.directory.name, "copy.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "source": {"url": self.source_url},
                    "target": {"url": self.target_url},
                    "tables": {"include": ["parent"]},
                },
                f,
            )

        result = self.invoke("--config", path, "--no-copy-tables")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.count("parent"), 0)

        result = self.invoke("--config", path)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.count("parent"), 5)
        self.assertEqual(self.count("child"), 0)

    def test_readonly_target(self) -> None:
        path = os.path.join(self.directory.name, "copy.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"target": {"readonly": True}}, f)

        result = self.invoke("--config", path, self.source_url, self.target_url)
        self.assertEqual(result.exit_code, 2)
        self.assertIn("read-only", result.output)


if __name__ == "__main__":
    unittest.main()
