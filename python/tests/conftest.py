"""Shared fixtures: a capturing context and a mock multipathd per test."""

import uuid

import pytest

from dmmp.context import Context
from dmmp.daemon.server import MockDaemon, Topology


class LogRecorder:
    """Log sink collecting (priority, message) pairs."""

    def __init__(self):
        self.records = []

    def __call__(self, ctx, priority, file, line, func_name, fmt, args):
        self.records.append((priority, fmt % args if args else fmt))

    def messages(self, priority=None):
        return [msg for prio, msg in self.records
                if priority is None or prio == priority]


@pytest.fixture
def socket_path():
    """Abstract socket name private to one test."""
    return f"/org/kernel/linux/storage/multipathd-test-{uuid.uuid4().hex}"


@pytest.fixture
def log_recorder():
    return LogRecorder()


@pytest.fixture
def ctx(socket_path, log_recorder):
    """Context pointed at the test's private socket, logging to a recorder."""
    c = Context()
    c.socket_path = socket_path
    c.ipc_timeout = 5000
    c.log_func = log_recorder
    yield c
    c.close()


@pytest.fixture
def mock_daemon(socket_path):
    """Factory starting a MockDaemon on the test's socket.

    Usage:
        daemon = mock_daemon(Topology(...), fault=Fault.NO_REPLY)
    """
    started = []

    def start(topology=None, fault=None):
        daemon = MockDaemon(topology or Topology(), socket_path=socket_path, fault=fault)
        daemon.start()
        started.append(daemon)
        return daemon

    yield start
    for daemon in started:
        daemon.stop()
