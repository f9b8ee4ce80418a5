"""Tests for EditorHost reads, writes, keys and validation."""

import zlib

import pytest

from gridsql.common.exceptions import ErrorCode, GridSQLError
from gridsql.editor import EditorHost, Field


@pytest.fixture
def people_db(db):
    db.sql(
        "CREATE TABLE users ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, first_name TEXT, last_name TEXT, "
        "site INTEGER, updated TEXT)"
    )
    db.sql("CREATE TABLE sites (id INTEGER PRIMARY KEY, name TEXT)")
    db.insert("sites", {"id": 1, "name": "Edinburgh"})
    db.insert("sites", {"id": 2, "name": "London"})
    db.insert("users", {"first_name": "Ann", "last_name": "Lee", "site": 1})
    db.insert("users", {"first_name": "Bob", "last_name": "Kay", "site": 2})
    return db


@pytest.fixture
def host(people_db):
    return EditorHost(
        people_db,
        "users",
        fields=[Field("first_name"), Field("last_name"), Field("site")],
    )


class TestPrimaryKeys:
    """Row identifiers built from single and compound keys."""

    @pytest.fixture
    def compound(self):
        return EditorHost(None, "visits", pkey=["site", "user"])

    def test_separator_is_derived_from_key_names(self, compound):
        expected = "_%08x_" % (zlib.crc32(b"site,user") & 0xFFFFFFFF)

        assert compound.pkey_separator() == expected

    def test_compound_value_survives_underscores(self, compound):
        value = compound.pkey_to_value({"site": "north_1", "user": 7}, flat=True)

        assert value == "north_1" + compound.pkey_separator() + "7"
        assert compound.pkey_to_array("row_" + value, flat=True) == {"site": "north_1", "user": "7"}

    def test_wrong_number_of_parts(self, compound):
        with pytest.raises(GridSQLError) as exc_info:
            compound.pkey_to_array("row_5", flat=True)

        assert exc_info.value.error_code == ErrorCode.MALFORMED_COMPOUND_KEY

    def test_null_key_value(self, compound):
        with pytest.raises(GridSQLError) as exc_info:
            compound.pkey_to_value({"site": None, "user": 7}, flat=True)

        assert exc_info.value.message == "Primary key value is null."

    def test_missing_key_value(self, compound):
        with pytest.raises(GridSQLError) as exc_info:
            compound.pkey_to_value({"user": 7}, flat=True)

        assert exc_info.value.message == "Primary key element is not available in data set."

    def test_nested_key_names(self):
        host = EditorHost(None, "users", pkey="users.id")

        assert host.pkey_to_array("row_5") == {"users": {"id": "5"}}
        assert host.pkey_to_value({"users": {"id": 5}}) == "5"


class TestRead:

    def test_rows_are_in_client_shape(self, host):
        rows = host.read()

        assert rows == [
            {"DT_RowId": "row_1", "first_name": "Ann", "last_name": "Lee", "site": 1},
            {"DT_RowId": "row_2", "first_name": "Bob", "last_name": "Kay", "site": 2},
        ]

    def test_read_single_row(self, host):
        assert host.read("row_2") == [
            {"DT_RowId": "row_2", "first_name": "Bob", "last_name": "Kay", "site": 2},
        ]

    def test_formatters_and_nested_names(self, people_db):
        host = EditorHost(
            people_db,
            "users",
            fields=[
                Field("first_name", "name.first").get_formatter(lambda value, row: value.upper()),
                Field("last_name", "name.last"),
            ],
            id_prefix="user-",
        )

        assert host.read("user-1") == [
            {"DT_RowId": "user-1", "name": {"first": "ANN", "last": "Lee"}},
        ]

    def test_get_disabled_and_fixed_values(self, people_db):
        host = EditorHost(
            people_db,
            "users",
            fields=[
                Field("first_name"),
                Field("last_name").get(False),
                Field("kind").get_value("person"),
            ],
        )

        assert host.read("row_1") == [{"DT_RowId": "row_1", "first_name": "Ann", "kind": "person"}]

    def test_left_join(self, people_db):
        host = EditorHost(
            people_db,
            "users",
            fields=[Field("users.first_name"), Field("sites.name")],
            pkey="users.id",
            left_join=[{"table": "sites", "field1": "sites.id", "operator": "=", "field2": "users.site"}],
        )

        assert host.read("row_2") == [
            {"DT_RowId": "row_2", "users": {"first_name": "Bob"}, "sites": {"name": "London"}},
        ]


class TestWrite:

    def test_create_returns_the_new_row(self, host):
        row = host.create({"first_name": "Cy", "last_name": "Poe", "site": 2})

        assert row == {"DT_RowId": "row_3", "first_name": "Cy", "last_name": "Poe", "site": 2}
        assert host.db.in_transaction is False

    def test_create_applies_set_rules(self, people_db):
        host = EditorHost(
            people_db,
            "users",
            fields=[
                Field("first_name").set_formatter(lambda value, data: value.strip()),
                Field("last_name").set("edit"),
                Field("updated").set_value(lambda: "2024-01-01"),
            ],
        )

        row = host.create({"first_name": "  Cy ", "last_name": "ignored"})

        assert row["first_name"] == "Cy"
        assert row["last_name"] is None
        assert row["updated"] == "2024-01-01"

    def test_edit_updates_only_submitted_fields(self, host):
        row = host.edit("row_1", {"last_name": "Lee-Smith"})

        assert row == {"DT_RowId": "row_1", "first_name": "Ann", "last_name": "Lee-Smith", "site": 1}

    def test_edit_follows_a_changed_key(self, people_db):
        host = EditorHost(people_db, "users", fields=[Field("id"), Field("first_name")])

        row = host.edit("row_1", {"id": 10, "first_name": "Ann"})

        assert row == {"DT_RowId": "row_10", "id": 10, "first_name": "Ann"}

    def test_remove(self, host):
        host.remove(["row_1", "row_2"])

        assert host.read() == []

    def test_function_fields_are_read_only(self, people_db):
        host = EditorHost(
            people_db,
            "users",
            fields=[Field("first_name"), Field("UPPER(last_name) as upper_last")],
            use_transaction=False,
        )

        assert host.read("row_1")[0]["upper_last"] == "LEE"
        with pytest.raises(GridSQLError) as exc_info:
            host.create({"first_name": "Cy", "upper_last": "POE"})

        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR

    def test_failed_write_is_rolled_back(self, people_db):
        host = EditorHost(
            people_db,
            "users",
            fields=[Field("first_name"), Field("missing_column")],
        )

        with pytest.raises(GridSQLError):
            host.create({"first_name": "Cy", "missing_column": 1})

        assert people_db.count("users") == 2
        assert people_db.in_transaction is False

    def test_compound_insert_needs_every_key_field(self, db):
        db.sql("CREATE TABLE visits (site INTEGER, visitor INTEGER, note TEXT, PRIMARY KEY (site, visitor))")
        host = EditorHost(
            db,
            "visits",
            pkey=["site", "visitor"],
            fields=[Field("site"), Field("visitor"), Field("note")],
        )

        with pytest.raises(GridSQLError):
            host.create({"site": 1, "note": "no visitor"})

        row = host.create({"site": 1, "visitor": 4, "note": "hello"})
        assert row["DT_RowId"] == "row_1" + host.pkey_separator() + "4"
        assert row["note"] == "hello"


class TestValidate:

    @pytest.fixture
    def validated(self, people_db):
        def required(value, data, field, context):
            return True if value else f"{field.name} is required for {context['action']}"

        return EditorHost(
            people_db,
            "users",
            fields=[Field("first_name").validator(required), Field("last_name")],
        )

    def test_errors_are_collected_per_field(self, validated):
        errors = validated.validate("create", {"0": {"first_name": "", "last_name": "Lee"}})

        assert errors == [{"name": "first_name", "status": "first_name is required for create"}]

    def test_valid_data(self, validated):
        assert validated.validate("edit", {"row_1": {"first_name": "Ann"}}) == []

    def test_context_carries_row_id_and_database(self, people_db):
        seen = {}

        def capture(value, data, field, context):
            seen.update(context)
            return True

        host = EditorHost(people_db, "users", fields=[Field("first_name").validator(capture)])
        host.validate("edit", {"row_2": {"first_name": "Bob"}})

        assert seen["id"] == "2"
        assert seen["db"] is people_db
        assert seen["host"] is host

    def test_other_actions_are_not_validated(self, validated):
        assert validated.validate("remove", {"row_1": {"first_name": ""}}) == []
