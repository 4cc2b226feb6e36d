from __future__ import annotations

import pytest

from mcpd_config.domain.errors import (
    AlreadyExists,
    ConfigError,
    Conflict,
    EmptyContract,
    EmptyInput,
    InvalidFormat,
    InvalidPath,
    InvalidValue,
    IOFailure,
    MissingArgument,
    NotFound,
    Unimplemented,
    UnknownKey,
    ValidationError,
    collect_messages,
)


def test_error_hierarchy() -> None:
    for exception_type in (
        NotFound,
        AlreadyExists,
        Conflict,
        InvalidValue,
        InvalidPath,
        MissingArgument,
        EmptyInput,
        IOFailure,
        ValidationError,
        Unimplemented,
    ):
        assert issubclass(exception_type, ConfigError)
    assert issubclass(UnknownKey, InvalidPath)
    assert issubclass(EmptyContract, EmptyInput)
    assert issubclass(InvalidFormat, IOFailure)


def test_invalid_value_carries_path_and_value() -> None:
    error = InvalidValue("bad", path="api.addr", value="x")
    assert (str(error), error.path, error.value) == ("bad", "api.addr", "x")


def test_validation_error_joins_messages_with_optional_heading() -> None:
    error = ValidationError(["one", "two"], heading="config invalid:")
    assert error.errors == ("one", "two")
    assert str(error) == "config invalid:\none\ntwo"


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (ValidationError(["a", "b"]), ["a", "b"]),
        (NotFound("missing"), ["missing"]),
    ],
)
def test_collect_messages_flattens_composites(error: Exception, expected: list[str]) -> None:
    assert collect_messages(error) == expected
