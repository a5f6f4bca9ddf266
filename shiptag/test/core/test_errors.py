"""Tests for shiptag.core.errors module."""

from __future__ import annotations

from shiptag.core.errors import ErrorCode


def test_exit_codes_are_stable() -> None:
    assert int(ErrorCode.OK) == 0
    assert int(ErrorCode.USER_ERROR) == 1
    assert int(ErrorCode.ENV_ERROR) == 2
    assert int(ErrorCode.BUILD_ERROR) == 3
    assert int(ErrorCode.NETWORK_ERROR) == 4
    assert int(ErrorCode.IO_ERROR) == 5
    assert int(ErrorCode.PUBLISH_ERROR) == 6


def test_str_and_success() -> None:
    assert str(ErrorCode.PUBLISH_ERROR) == "publish error"
    assert ErrorCode.OK.is_success
    assert not ErrorCode.BUILD_ERROR.is_success
