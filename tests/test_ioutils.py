"""Test file helpers and logging"""

import unittest
import tempfile
import shutil
from pathlib import Path
from unittest.mock import patch

from studiocurl.utils.ioutils import (
    validate_file,
    read_text_file,
    read_json_file,
    save_text_file,
    parse_external_boolean,
    create_interface,
)
from studiocurl.utils.logging import (
    LoglistLogger,
    ConsoleLogger,
    ExceptionConsoleLogger,
    FileLogger,
)


class TestFiles(unittest.TestCase):
    """File helpers log problems and return a null value."""

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.logger = LoglistLogger()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_validate_file(self):
        source = self.test_dir / "a.json"
        source.write_text("[]", encoding="utf-8")
        self.assertEqual(validate_file(source, self.logger), source)
        self.assertEqual(self.logger.count_logs(), 0)

    def test_validate_missing_and_empty(self):
        self.assertIsNone(validate_file("", self.logger))
        self.assertIsNone(validate_file(self.test_dir / "x", self.logger))
        self.assertIsNone(validate_file(self.test_dir, self.logger))
        empty = self.test_dir / "empty.json"
        empty.touch()
        self.assertIsNone(validate_file(empty, self.logger))
        self.assertEqual(self.logger.count_logs(2), 2)
        self.assertEqual(self.logger.count_logs(1), 4)

    def test_read_json(self):
        source = self.test_dir / "a.json"
        source.write_text('{"a": [1, "é"]}', encoding="utf-8")
        self.assertEqual(read_json_file(source, self.logger), {'a': [1, "é"]})

    def test_read_invalid_json(self):
        source = self.test_dir / "a.json"
        source.write_text('{"a": ', encoding="utf-8")
        self.assertIsNone(read_json_file(source, self.logger))
        self.assertIn("Invalid JSON", self.logger.get_logs(2)[0])

    def test_read_error(self):
        source = self.test_dir / "a.txt"
        source.write_text("text", encoding="utf-8")
        with patch('pathlib.Path.read_text') as mock_read:
            mock_read.side_effect = PermissionError("Permission denied")
            self.assertIsNone(read_text_file(source, self.logger))
        self.assertEqual(self.logger.count_logs(2), 1)

    def test_save(self):
        target = self.test_dir / "sub" / "out.json"
        self.assertTrue(save_text_file(target, "[1]", self.logger))
        self.assertEqual(target.read_text(encoding="utf-8"), "[1]")

    def test_save_error(self):
        with patch('pathlib.Path.write_text') as mock_write:
            mock_write.side_effect = OSError("Disk full")
            self.assertFalse(
                save_text_file(self.test_dir / "o.json", "x", self.logger)
            )
        self.assertEqual(self.logger.count_logs(2), 1)


class TestInterface(unittest.TestCase):
    def test_external_boolean(self):
        self.assertTrue(parse_external_boolean("True"))
        self.assertTrue(parse_external_boolean("yes"))
        self.assertFalse(parse_external_boolean("0"))
        self.assertFalse(parse_external_boolean(""))
        self.assertTrue(parse_external_boolean(1))

    def test_single_run(self):
        test_dir = Path(tempfile.mkdtemp())
        try:
            source = test_dir / "snapshot.json"
            source.write_text("{}", encoding="utf-8")
            calls: list[tuple[str, str]] = []

            def record(filename: str, target: str) -> None:
                calls.append((filename, target))

            create_interface(record, ["prog", str(source), "out.json"])
            self.assertEqual(calls, [(str(source), "out.json")])
        finally:
            shutil.rmtree(test_dir)

    def test_usage(self):
        calls: list[str] = []
        with patch('builtins.print'):
            create_interface(lambda f, t: calls.append(f), ["prog"])
        self.assertEqual(calls, [])


class TestLoggers(unittest.TestCase):
    def test_loglist_levels(self):
        logger = LoglistLogger()
        logger.debug("d")
        logger.info("i")
        logger.warning("w")
        logger.error("e")
        logger.critical("c")
        self.assertEqual(logger.count_logs(0), 5)
        self.assertEqual(logger.get_logs(1), ["WARNING - w", "ERROR - e", "CRITICAL - c"])
        self.assertEqual(logger.count_logs(2), 2)
        logger.clear_logs()
        self.assertEqual(logger.count_logs(), 0)

    def test_exception_logger(self):
        logger = ExceptionConsoleLogger("studiocurl.test")
        with self.assertRaises(RuntimeError):
            logger.error("failure")

    def test_console_level(self):
        logger = ConsoleLogger("studiocurl.test.level")
        logger.set_level(30)
        self.assertEqual(logger.get_level(), 30)

    def test_file_logger(self):
        test_dir = Path(tempfile.mkdtemp())
        try:
            log_file = test_dir / "logs" / "test.log"
            logger = FileLogger("studiocurl.test.file", log_file)
            logger.warning("written to file")
            self.assertIn(
                "written to file", log_file.read_text(encoding="utf-8")
            )
            logger.close()
        finally:
            shutil.rmtree(test_dir)


if __name__ == "__main__":
    unittest.main()
