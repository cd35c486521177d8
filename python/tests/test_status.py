"""Tests for path / path group status enums and string conversion."""

import pytest

from dmmp.status import (
    PATH_GROUP_STATUS_MAP,
    PATH_STATUS_MAP,
    PathGroupStatus,
    PathStatus,
    path_group_status_str,
    path_status_str,
)


class TestPathStatus:
    def test_numeric_values(self):
        """Values match multipathd's checker states."""
        assert PathStatus.UNKNOWN == 0
        assert PathStatus.DOWN == 2
        assert PathStatus.UP == 3
        assert PathStatus.SHAKY == 4
        assert PathStatus.GHOST == 5
        assert PathStatus.PENDING == 6
        assert PathStatus.TIMEOUT == 7
        assert PathStatus.DELAYED == 9

    @pytest.mark.parametrize("status, token", [
        (PathStatus.UNKNOWN, "undef"),
        (PathStatus.UP, "ready"),
        (PathStatus.DOWN, "faulty"),
        (PathStatus.SHAKY, "shaky"),
        (PathStatus.GHOST, "ghost"),
        (PathStatus.PENDING, "i/o pending"),
        (PathStatus.TIMEOUT, "i/o timeout"),
        (PathStatus.DELAYED, "delayed"),
    ])
    def test_to_string(self, status, token):
        assert path_status_str(status) == token

    @pytest.mark.parametrize("value", [1, 8, 10, -1])
    def test_gaps_are_invalid(self, value):
        """Values outside the enum give 'Invalid argument'."""
        assert path_status_str(value) == "Invalid argument"

    def test_from_string(self):
        assert PATH_STATUS_MAP.from_string("i/o pending") is PathStatus.PENDING

    def test_unknown_token_warns(self, ctx, log_recorder):
        """An unrecognized token maps to UNKNOWN with a warning."""
        assert PATH_STATUS_MAP.from_string("bogus", ctx) is PathStatus.UNKNOWN
        assert log_recorder.messages(4) == ["Got unknown path status: 'bogus'"]

    def test_unknown_token_without_context(self):
        assert PATH_STATUS_MAP.from_string("bogus") is PathStatus.UNKNOWN


class TestPathGroupStatus:
    @pytest.mark.parametrize("status, token", [
        (PathGroupStatus.UNKNOWN, "undef"),
        (PathGroupStatus.ENABLED, "enabled"),
        (PathGroupStatus.DISABLED, "disabled"),
        (PathGroupStatus.ACTIVE, "active"),
    ])
    def test_to_string(self, status, token):
        assert path_group_status_str(status) == token

    def test_out_of_range(self):
        assert path_group_status_str(4) == "Invalid argument"

    def test_from_string(self):
        assert PATH_GROUP_STATUS_MAP.from_string("enabled") is PathGroupStatus.ENABLED
        assert PATH_GROUP_STATUS_MAP.from_string("nope") is PathGroupStatus.UNKNOWN
