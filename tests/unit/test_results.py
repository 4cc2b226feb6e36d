from __future__ import annotations

from mcpd_config.domain.results import OperationResult, compare_values


def test_results_render_as_their_value() -> None:
    assert str(OperationResult.CREATED) == "created"
    assert f"{OperationResult.NOOP}" == "noop"


def test_only_noop_is_unchanged() -> None:
    assert [result for result in OperationResult if not result.changed] == [OperationResult.NOOP]


def test_compare_values_treats_empty_lists_as_absent() -> None:
    assert compare_values((), None) is OperationResult.NOOP
    assert compare_values(["a"], []) is OperationResult.DELETED
    assert compare_values(None, ("a",)) is OperationResult.CREATED
    assert compare_values(True, False) is OperationResult.UPDATED
