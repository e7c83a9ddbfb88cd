"""
Unit tests for fields.py and record.py

Tests field resolution including:
- Registry completeness and unknown names
- Lazy, cached sequence id, time and process id
- Agreement of time, timestamp and rtime within one record
- Constant logger fields
"""

import os
import sys
import unittest
from datetime import datetime
from io import StringIO

import pytest

from fieldlog import callsite
from fieldlog.errors import ConfigurationError, UnknownFieldError
from fieldlog.fields import FIELD_DESCRIPTIONS, FIELDS, format_time, resolve_fields
from fieldlog.levels import LogLevel
from fieldlog.logger import Logger
from fieldlog.record import new_record
from fieldlog.request import Request

TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def make_logger(fields, pattern=None, **kwargs):
    pattern = pattern or " ".join(["%s"] * len(fields))
    return Logger("test.fields", LogLevel.DEBUG, f"{pattern}\n{','.join(fields)}", TIME_FORMAT, StringIO(), **kwargs)


def make_record(message="hello", level=LogLevel.INFO):
    return new_record(Request(level, message), message)


class TestRegistry(unittest.TestCase):
    def test_supported_fields(self):
        self.assertEqual(
            set(FIELDS),
            {
                "name",
                "seqid",
                "levelno",
                "levelname",
                "created",
                "nsecs",
                "time",
                "timestamp",
                "rtime",
                "filename",
                "pathname",
                "module",
                "lineno",
                "funcname",
                "process",
                "message",
            },
        )

    def test_every_field_is_described(self):
        self.assertEqual(set(FIELD_DESCRIPTIONS), set(FIELDS))

    def test_resolve_fields_keeps_order(self):
        resolvers = resolve_fields(["message", "name", "message"])
        self.assertEqual(resolvers, (FIELDS["message"], FIELDS["name"], FIELDS["message"]))

    def test_unknown_field(self):
        with self.assertRaises(UnknownFieldError) as context:
            resolve_fields(["time", "hostname"])
        self.assertEqual(context.exception.field_name, "hostname")
        self.assertIsInstance(context.exception, ConfigurationError)

    def test_unknown_field_fails_at_logger_construction(self):
        with self.assertRaises(UnknownFieldError):
            Logger("test", LogLevel.INFO, "%s %s\nmessage,thread")


class TestRecord(unittest.TestCase):
    def test_new_record_copies_request(self):
        request = Request(LogLevel.WARNING, "%s", ("x",))
        request.pathname = "/src/app.py"
        request.filename = "app.py"
        request.lineno = 7
        request.funcname = "main"

        record = new_record(request, "x")

        self.assertEqual(record.level, LogLevel.WARNING)
        self.assertEqual(record.message, "x")
        self.assertEqual(record.pathname, "/src/app.py")
        self.assertEqual(record.filename, "app.py")
        self.assertEqual(record.lineno, 7)
        self.assertEqual(record.funcname, "main")

    def test_new_record_computes_nothing_lazy(self):
        record = make_record()

        self.assertIsNone(record.seqid)
        self.assertIsNone(record.time_ns)
        self.assertIsNone(record.process)

    def test_capture_time_is_fixed(self):
        record = make_record()
        first = record.capture_time()
        self.assertEqual(record.capture_time(), first)
        self.assertEqual(record.time_ns, first)

    def test_capture_process(self):
        record = make_record()
        self.assertEqual(record.capture_process(), os.getpid())
        self.assertEqual(record.process, os.getpid())


class TestSeqid:
    def test_same_value_for_every_read_within_a_record(self):
        logger = make_logger(["seqid", "seqid", "message", "seqid"])
        record = make_record()

        assert logger.resolve(record) == [1, 1, "hello", 1]
        assert logger.resolve(record) == [1, 1, "hello", 1]

    def test_later_records_get_larger_ids(self):
        logger = make_logger(["seqid"])

        ids = [logger.resolve(make_record())[0] for _ in range(5)]

        assert ids == [1, 2, 3, 4, 5]

    def test_records_without_seqid_do_not_consume_ids(self):
        logger = make_logger(["message"])
        logger.resolve(make_record())

        assert logger.next_seqid() == 1

    def test_counter_belongs_to_the_logger(self):
        first = make_logger(["seqid"])
        second = make_logger(["seqid"])
        first.resolve(make_record())

        assert second.resolve(make_record()) == [1]


class TestTimeFields:
    def test_time_and_timestamp_share_the_instant(self):
        logger = make_logger(["time", "timestamp"])
        record = make_record()

        formatted, timestamp = logger.resolve(record)

        parsed = datetime.strptime(formatted, TIME_FORMAT)
        seconds, remainder = divmod(timestamp, 1_000_000_000)
        assert parsed == datetime.fromtimestamp(seconds).replace(microsecond=remainder // 1000)

    def test_first_access_fixes_the_instant(self):
        logger = make_logger(["timestamp", "rtime", "time"])
        record = make_record()

        timestamp, rtime, formatted = logger.resolve(record)

        assert record.time_ns == timestamp
        assert rtime == timestamp - logger.start_time_ns
        assert formatted == format_time(timestamp, TIME_FORMAT)

    def test_rtime_is_not_negative(self):
        logger = make_logger(["rtime"])
        assert logger.resolve(make_record())[0] >= 0

    def test_time_is_captured_lazily(self):
        logger = make_logger(["message"])
        record = make_record()
        logger.resolve(record)

        assert record.time_ns is None

    def test_created_and_nsecs_are_logger_constants(self):
        logger = make_logger(["created", "nsecs"])

        first = logger.resolve(make_record())
        second = logger.resolve(make_record())

        assert first == second == [logger.start_time_ns, logger.start_time_ns % 1_000_000_000]

    def test_format_time_renders_microseconds(self):
        ns = 1_700_000_000_123_456_789
        expected = datetime.fromtimestamp(1_700_000_000).replace(microsecond=123456)

        assert format_time(ns, TIME_FORMAT) == expected.strftime(TIME_FORMAT)
        assert format_time(ns, "%f") == "123456"


class TestOtherFields:
    def test_name(self):
        assert make_logger(["name"]).resolve(make_record()) == ["test.fields"]

    def test_levelno_and_levelname(self):
        logger = make_logger(["levelno", "levelname"])

        assert logger.resolve(make_record(level=LogLevel.ERROR)) == [40, "ERROR"]

    def test_levelname_outside_the_table(self):
        logger = make_logger(["levelname"])

        assert logger.resolve(make_record(level=25)) == ["Level 25"]

    def test_process(self):
        logger = make_logger(["process", "process"])
        record = make_record()

        assert logger.resolve(record) == [os.getpid(), os.getpid()]
        assert record.process == os.getpid()

    def test_module_is_the_program_name(self, mocker):
        mocker.patch.object(sys, "argv", ["/usr/local/bin/worker", "--once"])

        assert make_logger(["module"]).resolve(make_record()) == ["worker"]

    def test_module_falls_back_to_the_interpreter(self, mocker):
        mocker.patch.object(sys, "argv", [])

        assert make_logger(["module"]).resolve(make_record()) == [os.path.basename(sys.executable)]

    def test_message(self):
        assert make_logger(["message"]).resolve(make_record("done")) == ["done"]

    def test_stack_fields_not_requested_stay_empty(self):
        logger = make_logger(["filename", "lineno"], pattern="%s %d")

        assert logger.resolve(make_record()) == ["", 0]

    def test_capture_failure_sentinels(self, mocker):
        mocker.patch.object(callsite, "_current_frame", return_value=None)
        output = StringIO()
        logger = Logger(
            "test",
            LogLevel.DEBUG,
            "%s|%s|%s|%d\npathname,filename,funcname,lineno",
            stream=output,
        )

        logger.info("hello")

        assert output.getvalue() == "???|???|???|-1\n"


@pytest.mark.parametrize("name", sorted(FIELDS))
def test_every_field_renders_with_s(name):
    logger = make_logger([name])
    record = make_record()

    assert logger.render(record).endswith("\n")
