"""Tests for inkwell.core.exceptions."""

import pytest

from inkwell.core.exceptions import (
    ConfigurationError,
    EntryNotFoundError,
    ExternalCallError,
    InkwellError,
    InputError,
    InvalidScopeError,
    NoDataForPeriodError,
    NoUsableInputError,
    PersistenceError,
    PipelineError,
)


@pytest.mark.parametrize(
    "exc_type",
    [
        ConfigurationError,
        InputError,
        NoUsableInputError,
        ExternalCallError,
        PersistenceError,
    ],
)
def test_all_errors_share_base(exc_type):
    with pytest.raises(InkwellError):
        raise exc_type("boom")


def test_stage_defaults_to_none():
    assert ExternalCallError("x").stage is None


def test_stage_can_be_attached():
    err = PersistenceError("disk full")
    err.stage = "persisted"
    assert err.stage == "persisted"


def test_invalid_scope_is_input_error():
    err = InvalidScopeError("bogus")
    assert isinstance(err, InputError)
    assert err.scope == "bogus"
    assert "'bogus'" in str(err)
    assert "entries, chunks" in str(err)


def test_no_data_for_period():
    err = NoDataForPeriodError("2025-03")
    assert err.period == "2025-03"
    assert str(err) == "No analytics data available for 2025-03"


def test_pipeline_error_carries_stage():
    err = PipelineError("failed", stage="chunked")
    assert err.stage == "chunked"


def test_entry_not_found():
    err = EntryNotFoundError("e-42")
    assert isinstance(err, PipelineError)
    assert err.entry_id == "e-42"
    assert err.stage == "loaded"
    assert str(err) == "Failed to load entry: e-42"
