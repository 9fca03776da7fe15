from pathlib import Path

import pytest

from sqlexport.core.errors import ConnectivityCause, ConnectivityError, FatalRunError
from sqlexport.core.objects import (
    CatalogCategory,
    ExportResult,
    ExtractedObject,
    ObjectKind,
)


def test_parent_table_is_only_valid_for_triggers():
    with pytest.raises(ValueError, match="only valid for triggers"):
        ExtractedObject(
            name="v", schema="dbo", kind=ObjectKind.VIEW, definition="x", parent_table="T"
        )


def test_name_must_not_be_blank():
    with pytest.raises(ValueError):
        ExtractedObject(name="  ", schema="dbo", kind=ObjectKind.VIEW, definition="x")


def test_functions_category_yields_both_function_kinds():
    assert CatalogCategory.FUNCTIONS.kinds == (
        ObjectKind.SCALAR_FUNCTION,
        ObjectKind.TABLE_VALUED_FUNCTION,
    )
    assert CatalogCategory.STORED_PROCEDURES.label == "Stored Procedures"


def test_export_result_counts():
    result = ExportResult()
    view = ExtractedObject(name="v", schema="dbo", kind=ObjectKind.VIEW, definition="x")
    trigger = ExtractedObject(
        name="t", schema="dbo", kind=ObjectKind.TRIGGER, definition="x", parent_table="T"
    )

    for obj in (view, trigger):
        result.record_found(obj)
    result.record_written(view, Path("Views/v.sql"))
    result.record_failure(trigger, "disk full")

    assert result.total_found == 2
    assert result.total_written == 1
    assert result.counts_by_kind()[ObjectKind.TRIGGER] == 0
    assert result.failures[0].kind is ObjectKind.TRIGGER
    assert result.ok is False


def test_fatal_run_error_adds_connectivity_hint():
    fatal = FatalRunError.from_error(
        "connecting", ConnectivityError(ConnectivityCause.TIMEOUT, "Login timeout expired")
    )

    assert fatal.message.startswith("Connection failed (timeout): Login timeout expired")
    assert "--timeout" in fatal.message
