from pathlib import Path, PurePath

import pytest

from sqlexport.core.objects import ExtractedObject, ObjectKind
from sqlexport.core.paths import (
    MAX_FILENAME_BYTES,
    UNRESOLVED_TRIGGERS,
    expected_directories,
    object_path,
    resolve,
    sanitize,
    script_filename,
)


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (ObjectKind.VIEW, "Views"),
        (ObjectKind.STORED_PROCEDURE, "StoredProcedures"),
        (ObjectKind.SCALAR_FUNCTION, "Functions_ScalarValued"),
        (ObjectKind.TABLE_VALUED_FUNCTION, "Functions_TableValued"),
    ],
)
def test_resolve_maps_kinds_to_category_directories(kind, expected):
    assert resolve(kind) == PurePath(expected)


def test_resolve_trigger_uses_parent_table():
    assert resolve(ObjectKind.TRIGGER, "Orders") == PurePath("Orders", "Triggers")


@pytest.mark.parametrize("parent", [None, "", "   "])
def test_resolve_trigger_without_parent_uses_unresolved_directory(parent):
    assert resolve(ObjectKind.TRIGGER, parent) == UNRESOLVED_TRIGGERS


def test_resolve_is_pure():
    assert resolve(ObjectKind.TRIGGER, "Order Lines") == resolve(
        ObjectKind.TRIGGER, "Order Lines"
    )


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("CustomerView", "CustomerView"),
        ("Audit Trigger!", "Audit_Trigger_"),
        ("a  b", "a_b"),
        ("a__b", "a_b"),
        ("usp-Load.v2", "usp-Load.v2"),
        ("Größe", "Gr_e"),
        ("", "_"),
        ("..", "_"),
        (".", "_"),
    ],
)
def test_sanitize(name, expected):
    assert sanitize(name) == expected


@pytest.mark.parametrize("name", ["Audit Trigger!", "x" * 400, "a/b\\c", "..", "__a__"])
def test_sanitize_is_idempotent(name):
    once = sanitize(name)
    assert sanitize(once) == once


def test_sanitize_truncates_to_byte_ceiling():
    assert len(sanitize("v" * 1000).encode()) == MAX_FILENAME_BYTES


def test_script_filename_stays_within_ceiling_including_suffix():
    filename = script_filename("p" * 1000)

    assert filename.endswith(".sql")
    assert len(filename.encode()) <= MAX_FILENAME_BYTES


def test_script_filename_with_schema():
    assert script_filename("Customer View", schema="sales") == "sales.Customer_View.sql"


def test_object_path_for_trigger(tmp_path: Path):
    obj = ExtractedObject(
        name="Audit Trigger!",
        schema="dbo",
        kind=ObjectKind.TRIGGER,
        definition="CREATE TRIGGER ...",
        parent_table="Orders",
    )

    assert object_path(tmp_path, obj) == tmp_path / "Orders" / "Triggers" / "Audit_Trigger_.sql"


def test_object_path_qualifies_schema_on_request(tmp_path: Path):
    obj = ExtractedObject(
        name="CustomerView", schema="sales", kind=ObjectKind.VIEW, definition="x"
    )

    assert object_path(tmp_path, obj, qualify_schema=True) == (
        tmp_path / "Views" / "sales.CustomerView.sql"
    )


def test_expected_directories_cover_all_categories(tmp_path: Path):
    names = {p.relative_to(tmp_path).as_posix() for p in expected_directories(tmp_path)}

    assert names == {
        ".",
        "Views",
        "StoredProcedures",
        "Functions_ScalarValued",
        "Functions_TableValued",
        "Triggers",
    }
