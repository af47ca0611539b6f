import os.path
import tempfile
import unittest
from pathlib import Path

from pysqlcopy.base import QueryException
from pysqlcopy.dialect.postgresql.policy import PostgreSQLPolicy
from pysqlcopy.script import (
    ScriptOptions,
    parse_boolean,
    parse_script,
    run_script,
    split_statements,
    strip_comments,
)
from tests.fakes import RecordingContext


class TestScriptParser(unittest.TestCase):
    def setUp(self) -> None:
        self.directory = tempfile.TemporaryDirectory()

    def tearDown(self) -> None:
        self.directory.cleanup()

    def write(self, name: str, content: str) -> Path:
        path = Path(os.path.join(self.directory.name, name))
        path.write_text(content, encoding="utf-8")
        return path

    def test_boolean(self) -> None:
        self.assertTrue(parse_boolean("Yes", False))
        self.assertFalse(parse_boolean("off", True))
        self.assertTrue(parse_boolean("", True))
        self.assertFalse(parse_boolean("maybe", False))

    def test_options(self) -> None:
        options = ScriptOptions()
        self.assertTrue(options.parse("nosplit, delimiter=/ errors=ignore nocomments"))
        self.assertEqual(
            options,
            ScriptOptions(split=False, comments=False, delimiter="/", ignore_errors=True),
        )

        options = ScriptOptions()
        self.assertFalse(options.parse("update the counters"))
        self.assertEqual(options, ScriptOptions())

        with self.assertRaises(ValueError):
            ScriptOptions().parse("nosplit please")
        with self.assertRaises(ValueError):
            ScriptOptions().parse("errors=sometimes")

    def test_single_line(self) -> None:
        self.assertEqual(parse_script("SELECT 1"), (["SELECT 1"], ScriptOptions()))

        statements, options = parse_script("UPDATE config SET value = 1; -- errors=ignore")
        self.assertEqual(statements, ["UPDATE config SET value = 1"])
        self.assertTrue(options.ignore_errors)

        statements, options = parse_script("SELECT 1; -- a plain comment")
        self.assertEqual(statements, ["SELECT 1; -- a plain comment"])
        self.assertFalse(options.ignore_errors)

    def test_multi_line(self) -> None:
        statements, _ = parse_script("CREATE TABLE a (x int);\n\nINSERT INTO a VALUES (1);\n")
        self.assertEqual(statements, ["CREATE TABLE a (x int)", "INSERT INTO a VALUES (1)"])

    def test_split(self) -> None:
        self.assertEqual(split_statements("SELECT 1\nGO\nSELECT 2\ngo"), ["SELECT 1", "SELECT 2"])
        self.assertEqual(
            split_statements("BEGIN\n  x := 1;\nEND;\n/\nSELECT 1 FROM dual\n/", "/"),
            ["BEGIN\n  x := 1;\nEND;", "SELECT 1 FROM dual"],
        )
        self.assertEqual(split_statements("SELECT 1 $$\nSELECT 2", "$$"), ["SELECT 1", "SELECT 2"])
        self.assertEqual(split_statements(";\n;"), [])

    def test_comments(self) -> None:
        self.assertEqual(
            strip_comments("SELECT '--not' -- comment\n/* block\ncomment */ FROM t"),
            "SELECT '--not' \n FROM t",
        )

    def test_file(self) -> None:
        path = self.write(
            "script.sql",
            "-- delimiter=/ nocomments\n"
            "BEGIN\n"
            "    -- explain\n"
            "    NULL;\n"
            "END;\n"
            "/\n"
            "SELECT 1 FROM dual\n",
        )

        for reference in (f"@{path}", path.as_uri()):
            with self.subTest(reference=reference):
                statements, options = parse_script(reference)
                self.assertEqual(options.delimiter, "/")
                self.assertFalse(options.comments)
                self.assertEqual(len(statements), 2)
                self.assertNotIn("explain", statements[0])
                self.assertTrue(statements[0].startswith("BEGIN"))
                self.assertEqual(statements[1], "SELECT 1 FROM dual")

    def test_file_options_trailer(self) -> None:
        path = self.write("single.sql", "SELECT 1;\nSELECT 2;\n")
        statements, options = parse_script(f"@{path}; -- errors=ignore")
        self.assertTrue(options.ignore_errors)
        self.assertEqual(statements, ["SELECT 1", "SELECT 2"])

    def test_nosplit(self) -> None:
        path = self.write("block.sql", "-- nosplit\nCREATE FUNCTION f() AS $$\nBEGIN; END;\n$$;\n")
        statements, _ = parse_script(f"@{path}")
        self.assertEqual(statements, ["CREATE FUNCTION f() AS $$\nBEGIN; END;\n$$;"])


class TestScriptRunner(unittest.IsolatedAsyncioTestCase):
    async def test_run(self) -> None:
        context = RecordingContext.create(PostgreSQLPolicy())
        await run_script(context, "CREATE TABLE a (x int);\nINSERT INTO a VALUES (1);")
        self.assertEqual(
            context.events, ["CREATE TABLE a (x int)", "INSERT INTO a VALUES (1)", "COMMIT"]
        )

    async def test_empty(self) -> None:
        context = RecordingContext.create(PostgreSQLPolicy())
        await run_script(context, None)
        await run_script(context, "")
        self.assertEqual(context.events, [])

    async def test_failure(self) -> None:
        context = RecordingContext.create(PostgreSQLPolicy(), failures=["BAD"])
        with self.assertRaises(QueryException):
            await run_script(context, "SELECT 1;\nBAD STATEMENT;\nSELECT 2;")
        self.assertEqual(context.events, ["SELECT 1", "BAD STATEMENT", "ROLLBACK"])

    async def test_ignore_errors(self) -> None:
        context = RecordingContext.create(PostgreSQLPolicy(), failures=["BAD"])
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / "script.sql"
            path.write_text("-- errors=ignore\nSELECT 1;\nBAD STATEMENT;\nSELECT 2;\n", encoding="utf-8")
            with self.assertLogs("pysqlcopy", level="ERROR"):
                await run_script(context, f"@{path}")

        self.assertEqual(
            context.events,
            ["SELECT 1", "COMMIT", "BAD STATEMENT", "ROLLBACK", "SELECT 2", "COMMIT"],
        )


if __name__ == "__main__":
    unittest.main()
