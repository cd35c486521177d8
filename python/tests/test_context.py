"""Tests for the Context: priorities, sinks, userdata and logging."""

import logging
import re

import pytest

from dmmp.config import ContextConfig
from dmmp.context import DEFAULT_IPC_TIMEOUT, DEFAULT_SOCKET_PATH, Context
from dmmp.log import (
    ALIGN_WIDTH,
    LogPriority,
    log_priority_from_str,
    log_priority_str,
    log_stderr,
)


class TestDefaults:
    def test_new_context(self):
        """A fresh context uses the stderr sink at WARNING."""
        ctx = Context()
        assert ctx.log_priority == LogPriority.WARNING
        assert ctx.log_func is log_stderr
        assert ctx.userdata is None
        assert ctx.socket_path == DEFAULT_SOCKET_PATH
        assert ctx.ipc_timeout == DEFAULT_IPC_TIMEOUT

    def test_independent_contexts(self):
        """Settings of one context never leak into another."""
        a, b = Context(), Context()
        a.log_priority = LogPriority.DEBUG
        a.userdata = "a"
        assert b.log_priority == LogPriority.WARNING
        assert b.userdata is None

    def test_from_config(self):
        config = ContextConfig(LogPriority.INFO, "/tmp/mpd", 250)
        ctx = Context.from_config(config)
        assert ctx.log_priority == LogPriority.INFO
        assert ctx.socket_path == "/tmp/mpd"
        assert ctx.ipc_timeout == 250


class TestProperties:
    def test_priority_setter_coerces(self):
        ctx = Context()
        ctx.log_priority = 7
        assert ctx.log_priority is LogPriority.DEBUG

    def test_priority_setter_rejects_unknown(self):
        ctx = Context()
        with pytest.raises(ValueError):
            ctx.log_priority = 5

    def test_log_func_must_be_callable(self):
        ctx = Context()
        with pytest.raises(TypeError):
            ctx.log_func = "not a function"

    def test_userdata_round_trip(self):
        ctx = Context()
        token = object()
        ctx.userdata = token
        assert ctx.userdata is token
        ctx.userdata = None
        assert ctx.userdata is None


class TestThreshold:
    def test_filtered_by_priority(self, log_recorder):
        """Only messages at or above the threshold reach the sink."""
        ctx = Context()
        ctx.log_func = log_recorder
        ctx.log_priority = LogPriority.WARNING
        ctx.debug("d")
        ctx.info("i")
        ctx.warn("w")
        ctx.error("e")
        assert log_recorder.messages() == ["w", "e"]

    def test_debug_passes_everything(self, log_recorder):
        ctx = Context()
        ctx.log_func = log_recorder
        ctx.log_priority = LogPriority.DEBUG
        ctx.debug("d %d", 1)
        ctx.info("i")
        assert log_recorder.records == [
            (LogPriority.DEBUG, "d 1"),
            (LogPriority.INFO, "i"),
        ]

    def test_format_not_evaluated_when_filtered(self):
        """Arguments of a dropped message are never formatted."""
        calls = []
        ctx = Context()
        ctx.log_func = lambda *a: calls.append(a)
        ctx.debug("%d", "not a number")
        assert calls == []

    def test_caller_location(self):
        """The sink receives the caller's file, line and function."""
        seen = []
        ctx = Context()
        ctx.log_func = lambda c, prio, file, line, func, fmt, args: seen.append((file, func, line))
        ctx.error("boom")
        file, func, line = seen[0]
        assert file == "test_context.py"
        assert func == "test_caller_location"
        assert line > 0

    def test_sink_gets_context(self):
        seen = []
        ctx = Context()
        ctx.userdata = {"k": 1}
        ctx.log_func = lambda c, *rest: seen.append(c.userdata)
        ctx.warn("x")
        assert seen == [{"k": 1}]


class TestStderrSink:
    def test_default_format(self, capsys):
        """libdmmp <prio>: <msg>, padded, then the source location."""
        ctx = Context()
        ctx.error("Got %s", "trouble")
        err = capsys.readouterr().err
        line = err.rstrip("\n")
        assert line.startswith("libdmmp error: Got trouble")
        assert line.index(" # ") >= ALIGN_WIDTH
        assert re.search(r" # test_context\.py:test_default_format\(\):\d+$", line)

    def test_userdata_appended(self, capsys):
        ctx = Context()
        ctx.userdata = "tag"
        ctx.warn("hello")
        assert "libdmmp warning: hello(userdata: 'tag')" in capsys.readouterr().err

    def test_userdata_outside_padding(self, capsys):
        """The location column is aligned on the message without userdata."""
        ctx = Context()
        ctx.userdata = "tag"
        ctx.warn("hello")
        line = capsys.readouterr().err.rstrip("\n")
        suffix = "(userdata: 'tag')"
        assert line.startswith("libdmmp warning: hello" + suffix + " ")
        assert line.index(" # ") == ALIGN_WIDTH + len(suffix)

    def test_goes_through_logging(self):
        """Extra handlers on the 'dmmp' logger see the rendered line."""
        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = Collect()
        logger = logging.getLogger("dmmp")
        logger.addHandler(handler)
        try:
            ctx = Context()
            ctx.error("via logging")
        finally:
            logger.removeHandler(handler)
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert "libdmmp error: via logging" in records[0].getMessage()


class TestPriorityNames:
    @pytest.mark.parametrize("prio, name", [
        (LogPriority.ERROR, "error"),
        (LogPriority.WARNING, "warning"),
        (LogPriority.INFO, "info"),
        (LogPriority.DEBUG, "debug"),
    ])
    def test_names(self, prio, name):
        assert log_priority_str(prio) == name
        assert log_priority_from_str(name) is prio

    def test_invalid_name(self):
        assert log_priority_str(5) == "Invalid argument"
        with pytest.raises(ValueError):
            log_priority_from_str("loud")

    def test_case_insensitive(self):
        assert log_priority_from_str("DEBUG") is LogPriority.DEBUG
