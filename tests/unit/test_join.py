"""Tests for one-to-one and one-to-many row joins."""

import pytest

from gridsql.common.exceptions import ErrorCode, GridSQLError
from gridsql.editor import EditorHost, Field, Join, Mjoin


@pytest.fixture
def access_db(db):
    db.sql("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, first_name TEXT, site INTEGER)")
    db.sql("CREATE TABLE sites (id INTEGER PRIMARY KEY, name TEXT)")
    db.sql("CREATE TABLE permission (id INTEGER PRIMARY KEY, name TEXT)")
    db.sql("CREATE TABLE user_permission (user_id INTEGER, permission_id INTEGER)")
    db.sql("CREATE TABLE notes (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, body TEXT, kind TEXT)")

    for site_id, name in ((1, "Edinburgh"), (2, "London")):
        db.insert("sites", {"id": site_id, "name": name})
    for permission_id, name in ((1, "Printer"), (2, "Servers"), (3, "Accounts")):
        db.insert("permission", {"id": permission_id, "name": name})
    for first_name, site in (("Ann", 1), ("Bob", 2), ("Cy", 1)):
        db.insert("users", {"first_name": first_name, "site": site})
    for user_id, permission_id in ((1, 1), (1, 3), (2, 2), (2, 3), (3, 1)):
        db.insert("user_permission", {"user_id": user_id, "permission_id": permission_id})

    return db


def _permissions():
    return (
        Mjoin("permission")
        .link("users.id", "user_permission.user_id")
        .link("permission.id", "user_permission.permission_id")
        .order("permission.name asc")
        .fields(Field("id"), Field("name"))
    )


@pytest.fixture
def host(access_db):
    return EditorHost(
        access_db,
        "users",
        fields=[Field("first_name"), Field("site")],
        joins=[_permissions()],
    )


class TestBuilder:

    def test_table_sets_the_property_name(self):
        join = Join("sites")

        assert join.child_table == "sites"
        assert join.property_name == "sites"
        assert join.name("site_detail").property_name == "site_detail"

    def test_mjoin_is_an_array_join(self):
        assert Mjoin("permission").cardinality.value == "array"
        assert Join("sites").cardinality.value == "object"

    def test_link_needs_table_and_column(self):
        with pytest.raises(GridSQLError) as exc_info:
            Join("sites").link("site", "sites.id")

        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR

    def test_link_at_most_twice(self):
        join = Join("a").link("x.a", "y.b").link("y.c", "a.d")

        with pytest.raises(GridSQLError):
            join.link("a.e", "x.f")


class TestArrayJoinRead:

    def test_children_are_grouped_per_parent(self, host):
        rows = host.read()

        by_id = {row["DT_RowId"]: row["permission"] for row in rows}
        assert by_id == {
            "row_1": [{"id": 3, "name": "Accounts"}, {"id": 1, "name": "Printer"}],
            "row_2": [{"id": 3, "name": "Accounts"}, {"id": 2, "name": "Servers"}],
            "row_3": [{"id": 1, "name": "Printer"}],
        }

    def test_one_query_per_join(self, host, statements):
        captured = statements(host.db)

        host.read()

        assert len(captured) == 2
        assert "IN (:wherein1, :wherein2, :wherein3)" in captured[1]["query"]

    def test_read_is_idempotent(self, host):
        assert host.read() == host.read()

    def test_parent_without_children_gets_empty_list(self, host):
        host.db.delete("user_permission", {"user_id": 3})

        rows = host.read("row_3")

        assert rows[0]["permission"] == []

    def test_large_reads_skip_the_key_restriction(self, access_db, statements):
        host = EditorHost(
            access_db,
            "users",
            fields=[Field("first_name")],
            joins=[_permissions()],
            join_batch_threshold=2,
        )
        captured = statements(access_db)

        rows = host.read()

        assert " IN (" not in captured[1]["query"]
        assert [len(row["permission"]) for row in rows] == [2, 2, 1]


class TestObjectJoinRead:

    def test_object_join_on_a_host_field(self, access_db):
        host = EditorHost(
            access_db,
            "users",
            fields=[Field("first_name"), Field("site")],
            joins=[Join("sites").link("users.site", "sites.id").fields(Field("name"))],
        )

        rows = host.read()

        assert [row["sites"] for row in rows] == [
            {"name": "Edinburgh"},
            {"name": "London"},
            {"name": "Edinburgh"},
        ]

    def test_join_is_shared_by_aliased_and_plain_hosts(self, access_db):
        sites = Join("sites").link("sites.id", "users.site").fields(Field("name"))
        aliased = EditorHost(access_db, "users as u", fields=[Field("site")], joins=[sites])
        plain = EditorHost(access_db, "users", fields=[Field("site")], joins=[sites])

        expected = [{"name": "Edinburgh"}, {"name": "London"}, {"name": "Edinburgh"}]
        assert [row["sites"] for row in aliased.read()] == expected
        assert [row["sites"] for row in plain.read()] == expected
        assert sites.link_table is None
        assert sites._alias_parent_table is None
        assert sites._parent is None

    def test_unmatched_parent_gets_empty_object(self, access_db):
        access_db.update("users", {"site": 9}, {"id": 2})
        host = EditorHost(
            access_db,
            "users",
            fields=[Field("site")],
            joins=[Join("sites").link("users.site", "sites.id").fields(Field("name"))],
        )

        assert host.read("row_2")[0]["sites"] == {}

    def test_join_field_must_be_read(self, access_db):
        host = EditorHost(
            access_db,
            "users",
            fields=[Field("first_name")],
            joins=[Join("sites").link("users.site", "sites.id").fields(Field("name"))],
        )

        with pytest.raises(GridSQLError) as exc_info:
            host.read()

        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR
        assert "site" in exc_info.value.message

    def test_compound_host_key_is_rejected(self, access_db):
        host = EditorHost(
            access_db,
            "user_permission",
            pkey=["user_id", "permission_id"],
            joins=[Join("permission").link("user_permission.permission_id", "permission.id")],
        )

        with pytest.raises(GridSQLError):
            host.read()


class TestJoinWrites:

    def test_create_writes_link_rows(self, host):
        row = host.create({
            "first_name": "Di",
            "site": 2,
            "permission": [{"id": 2}, {"id": 1}],
            "permission-many-count": 2,
        })

        assert row["DT_RowId"] == "row_4"
        assert row["permission"] == [{"id": 1, "name": "Printer"}, {"id": 2, "name": "Servers"}]

    def test_create_without_count_leaves_links_alone(self, host):
        row = host.create({"first_name": "Di", "permission": [{"id": 2}]})

        assert row["permission"] == []

    def test_edit_replaces_link_rows(self, host):
        row = host.edit("row_1", {
            "first_name": "Ann",
            "permission": [{"id": 2}],
            "permission-many-count": 1,
        })

        assert row["permission"] == [{"id": 2, "name": "Servers"}]
        assert host.db.count("user_permission", "user_id", {"user_id": 2}) == 2

    def test_remove_deletes_children_before_parent(self, host, statements):
        captured = statements(host.db)

        host.remove(["row_1"])

        deletes = [" ".join(entry["query"].split()) for entry in captured]
        deletes = [sql for sql in deletes if sql.startswith("DELETE")]
        assert deletes[0].startswith('DELETE FROM "user_permission"')
        assert deletes[1].startswith('DELETE FROM "users"')
        assert host.db.count("user_permission", "user_id", {"user_id": 1}) == 0
        assert host.db.count("users") == 2

    def test_direct_array_join_with_where_set(self, access_db):
        notes = (
            Mjoin("notes")
            .link("users.id", "notes.user_id")
            .where("kind", "public")
            .where_set(True)
            .fields(Field("body"))
        )
        host = EditorHost(access_db, "users", fields=[Field("first_name")], joins=[notes])
        access_db.insert("notes", {"user_id": 1, "body": "private", "kind": "private"})

        row = host.edit("row_1", {"notes": [{"body": "hello"}], "notes-many-count": 1})

        assert row["notes"] == [{"body": "hello"}]
        assert access_db.select("notes", ["body", "kind"], {"user_id": 1}, "id").fetch_all() == [
            {"body": "private", "kind": "private"},
            {"body": "hello", "kind": "public"},
        ]

    def test_object_join_update_pushes(self, access_db):
        access_db.sql("CREATE TABLE profiles (user_id INTEGER, bio TEXT)")
        profile = Join("profiles").link("users.id", "profiles.user_id").fields(Field("bio"))
        host = EditorHost(access_db, "users", fields=[Field("first_name")], joins=[profile])

        first = host.edit("row_2", {"profiles": {"bio": "Hi"}, "profiles-many-count": 1})
        second = host.edit("row_2", {"profiles": {"bio": "Hello"}, "profiles-many-count": 1})

        assert first["profiles"] == {"bio": "Hi"}
        assert second["profiles"] == {"bio": "Hello"}
        assert access_db.count("profiles", "user_id") == 1


class TestJoinValidation:

    def test_join_validator_and_field_validators(self, access_db):
        def at_least_one(host, action, data):
            return True if data else "Select at least one permission"

        join = (
            Mjoin("permission")
            .link("users.id", "user_permission.user_id")
            .link("permission.id", "user_permission.permission_id")
            .validator("permission[].id", at_least_one)
            .fields(Field("id").validator(lambda value, data, field, ctx: True if value else "Required"))
        )
        host = EditorHost(access_db, "users", fields=[Field("first_name")], joins=[join])

        errors = host.validate("create", {"0": {
            "first_name": "Di",
            "permission": [],
            "permission-many-count": 0,
        }})
        assert errors == [{"name": "permission[].id", "status": "Select at least one permission"}]

        errors = host.validate("create", {"0": {
            "first_name": "Di",
            "permission": [{"id": None}],
            "permission-many-count": 1,
        }})
        assert errors == [{"name": "permission[].id", "status": "Required"}]

    def test_join_options_use_prefixed_names(self, access_db):
        join = (
            Mjoin("permission")
            .link("users.id", "user_permission.user_id")
            .link("permission.id", "user_permission.permission_id")
            .fields(Field("id").options("permission", "id", "name"), Field("name"))
        )
        host = EditorHost(access_db, "users", fields=[Field("first_name")], joins=[join])

        options = host.options()

        assert options == {
            "permission[].id": [
                {"label": "Accounts", "value": 3},
                {"label": "Printer", "value": 1},
                {"label": "Servers", "value": 2},
            ]
        }
