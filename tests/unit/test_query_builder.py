"""Tests for statement assembly in Query."""

import pytest

from gridsql.common.exceptions import ErrorCode, GridSQLError
from gridsql.types.query import LeftJoin


def _normalize(sql: str) -> str:
    return " ".join(sql.split())


class TestSelect:
    """SELECT rendering on MySQL."""

    @pytest.fixture
    def mysql(self, mock_db):
        return mock_db("mysql")

    def test_fields_are_quoted_and_aliased(self, mysql):
        query = mysql.query("select", "users").get("id", "users.name")
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT `id` as 'id', `users`.`name` as 'users.name' FROM `users`"
        )

    def test_explicit_alias_is_kept(self, mysql):
        query = mysql.query("select", "users").get("first_name as name")
        query.exec()

        assert _normalize(query.sql) == "SELECT `first_name` as 'name' FROM `users`"

    def test_comma_separated_fields_are_split_but_functions_are_not(self, mysql):
        query = mysql.query("select", "users").get("id, name").get("CONCAT(first, ', ', last) as full")
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT `id` as 'id', `name` as 'name', CONCAT(first, ', ', last) as full FROM `users`"
        )

    def test_distinct_order_limit_offset(self, mysql):
        query = (
            mysql.query("select", "users")
            .distinct(True)
            .get("*")
            .order("name asc, FIELD(id, 3, 1) desc")
            .limit(10)
            .offset(20)
        )
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT DISTINCT * FROM `users` ORDER BY `name` asc, FIELD(id, 3, 1) desc LIMIT 10 OFFSET 20"
        )

    def test_group_by(self, mysql):
        query = mysql.query("select", "users").get("site").group_by("site")
        query.exec()

        assert _normalize(query.sql).endswith("GROUP BY `site`")


class TestConditions:
    """WHERE composition through the query API."""

    @pytest.fixture
    def mysql(self, mock_db):
        return mock_db("mysql")

    def test_where_mapping_adds_one_condition_per_item(self, mysql):
        query = mysql.query("select", "users").get("*").where({"site": 1, "active": True})
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` WHERE `site` = :where_0 AND `active` = :where_1"
        )
        assert query.bindings.as_params() == {"where_0": 1, "where_1": True}

    def test_where_none_tests_for_null(self, mysql):
        query = mysql.query("select", "users").get("*").where("deleted", None).where("site", None, "!=")
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` WHERE `deleted` IS NULL AND `site` IS NOT NULL"
        )
        assert len(query.bindings) == 0

    def test_or_where_list_gives_or_joined_equalities(self, mysql):
        query = mysql.query("select", "users").get("*").where("active", 1).or_where("id", [1, 2])
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` WHERE `active` = :where_0 OR `id` = :where_1 OR `id` = :where_2"
        )
        assert query.bindings.as_params() == {"where_0": 1, "where_1": 1, "where_2": 2}

    def test_where_list_gives_and_joined_conditions(self, mysql):
        query = mysql.query("select", "users").get("*").where("tag", ["a", "b"], "!=")
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` WHERE `tag` != :where_0 AND `tag` != :where_1"
        )

    def test_callable_condition_is_grouped(self, mysql):
        query = (
            mysql.query("select", "users")
            .get("*")
            .where("a", 1)
            .where(lambda q: q.where("b", 2).or_where("c", 3))
        )
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` WHERE `a` = :where_0 AND (`b` = :where_2 OR `c` = :where_3 )"
        )

    def test_where_group_with_callable_balances_markers(self, mysql):
        query = mysql.query("select", "users").get("*").where_group(lambda q: q.where("a", 1))

        assert query.conditions.is_balanced()

    def test_empty_group_renders_tautology(self, mysql):
        query = mysql.query("select", "users").get("*").where_group(True).where_group(False)
        query.exec()

        assert _normalize(query.sql) == "SELECT * FROM `users` WHERE (1=1)"

    def test_unbound_value_is_compared_as_identifier(self, mysql):
        query = mysql.query("select", "users").get("*").where("users.site", "sites.id", bind=False)
        query.exec()

        assert _normalize(query.sql) == "SELECT * FROM `users` WHERE `users`.`site` = `sites`.`id`"

    def test_where_in(self, mysql):
        query = mysql.query("select", "users").get("*").where_in("id", [4, 5]).where_in("id", [])
        query.exec()

        assert _normalize(query.sql) == "SELECT * FROM `users` WHERE `id` IN (:wherein1, :wherein2)"


class TestJoins:
    """JOIN and LEFT JOIN rendering."""

    @pytest.fixture
    def mysql(self, mock_db):
        return mock_db("mysql")

    def test_join_condition_identifiers_are_quoted(self, mysql):
        query = mysql.query("select", "users").get("*").join("sites", "sites.id = users.site", "left")
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` LEFT JOIN `sites` ON `sites`.`id` = `users`.`site`"
        )

    def test_unknown_join_type_is_a_plain_join(self, mysql):
        query = mysql.query("select", "users").get("*").join("sites", "sites.id = users.site", "cross")
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` JOIN `sites` ON `sites`.`id` = `users`.`site`"
        )

    def test_left_join_accepts_models_and_mappings(self, mysql):
        query = mysql.query("select", "users").get("*").left_join([
            LeftJoin(table="sites", field1="sites.id", operator="=", field2="users.site"),
            {"table": "teams as t", "field1": "t.id = users.team AND t.active = 1"},
        ])
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT * FROM `users` "
            "LEFT JOIN `sites` ON `sites`.`id` = `users`.`site` "
            "LEFT JOIN `teams` t ON t.id = users.team AND t.active = 1"
        )

    def test_join_and_conditions_bind_distinct_placeholders(self, mysql):
        query = (
            mysql.query("select", "users")
            .get("*")
            .join("sites", "sites.id = users.site")
            .where("sites.name", "North")
            .where_in("users.id", [1, 2])
            .or_where("users.site", [3, 4])
        )
        query.exec()

        names = query.bindings.names()
        assert names == ["where_0", "wherein1", "wherein2", "where_2", "where_3"]
        for name in names:
            assert f":{name}" in query.sql


class TestWrites:
    """INSERT, UPDATE, DELETE and COUNT rendering."""

    @pytest.fixture
    def mysql(self, mock_db):
        return mock_db("mysql")

    def test_insert_binds_sanitized_names(self, mysql):
        query = mysql.query("insert", "users as u").set({"name": "Ann", "users.age": 3})
        query.exec()

        assert _normalize(query.sql) == (
            "INSERT INTO `users` ( `name`, `users`.`age` ) VALUES ( :name, :users_1_age )"
        )
        assert query.bindings.as_params() == {"name": "Ann", "users_1_age": 3}

    def test_update_with_literal_value(self, mysql):
        query = (
            mysql.query("update", "users")
            .set("name", "Ann")
            .set("updated", "NOW()", bind=False)
            .where("id", 7)
        )
        query.exec()

        assert _normalize(query.sql) == (
            "UPDATE `users` SET `name` = :name, `updated` = NOW() WHERE `id` = :where_0"
        )

    def test_delete(self, mysql):
        query = mysql.query("delete", "users").where("id", 7)
        query.exec()

        assert _normalize(query.sql) == "DELETE FROM `users` WHERE `id` = :where_0"

    def test_count(self, mysql):
        query = mysql.query("count", "users").get("id").where("site", 2)
        query.exec()

        assert _normalize(query.sql) == (
            "SELECT COUNT( `id` ) as `cnt` FROM `users` WHERE `site` = :where_0"
        )

    def test_bindings_follow_placeholder_order(self, mysql, statements):
        captured = statements(mysql)
        query = mysql.query("update", "users").where("id", 1).set("first_name", "Zed")
        query.exec()

        assert _normalize(query.sql) == "UPDATE `users` SET `first_name` = :first_name WHERE `id` = :where_0"
        assert query.bindings.names() == ["first_name", "where_0"]
        assert [binding["name"] for binding in captured[0]["bindings"]] == [":first_name", ":where_0"]

    def test_placeholders_are_unique_across_clauses(self, mysql):
        query = (
            mysql.query("update", "users")
            .set({"name": "Ann", "users.name": "Bea", "users-name": "Cy"})
            .where("id", 1)
            .or_where("site", [2, 3])
            .where_in("team", [4, 5])
            .where("name", "Ann")
        )
        query.exec()

        names = query.bindings.names()
        assert len(names) == 9
        assert len(set(names)) == len(names)
        for name in names:
            assert f":{name}" in query.sql


class TestExecutionGuards:
    """Errors raised before a statement reaches the database."""

    def test_query_is_single_use(self, mock_db):
        query = mock_db("mysql").query("select", "users").get("*")
        query.exec()

        with pytest.raises(GridSQLError) as exc_info:
            query.exec()
        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR

    def test_unknown_kind_is_rejected(self, mock_db):
        with pytest.raises(GridSQLError) as exc_info:
            mock_db("mysql").query("merge", "users").exec()

        assert exc_info.value.error_code == ErrorCode.UNSUPPORTED_COMMAND
        assert "merge" in exc_info.value.message

    def test_raw_query_needs_sql(self, mock_db):
        with pytest.raises(GridSQLError) as exc_info:
            mock_db("mysql").raw().exec()

        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR

    def test_debug_callback_receives_statement_and_bindings(self, mock_db, statements):
        db = mock_db("mysql")
        captured = statements(db)

        db.query("select", "users").get("*").where("id", 3).exec()

        assert len(captured) == 1
        assert _normalize(captured[0]["query"]) == "SELECT * FROM `users` WHERE `id` = :where_0"
        assert captured[0]["bindings"] == [{"name": ":where_0", "value": 3, "type": None}]
