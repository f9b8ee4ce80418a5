"""Tests for option lists, search panes and search builder options."""

import pytest

from gridsql.editor import (
    EditorHost,
    Field,
    Options,
    SearchBuilderOptions,
    SearchPaneOptions,
    compare_labels,
    sort_by_label,
)
from gridsql.editor.options import order_columns


@pytest.fixture
def sites_db(db):
    db.sql("CREATE TABLE sites (id INTEGER PRIMARY KEY, name TEXT, city TEXT)")
    db.sql("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, first_name TEXT, site INTEGER)")
    for site_id, name, city in ((1, "North", "Leeds"), (2, "East", "Hull"), (3, "West", None)):
        db.insert("sites", {"id": site_id, "name": name, "city": city})
    for first_name, site in (("Cy", 1), ("Ann", 1), ("Bob", 2)):
        db.insert("users", {"first_name": first_name, "site": site})
    return db


class TestLabelOrdering:

    def test_numeric_labels_compare_as_numbers(self):
        assert compare_labels(9, 10) < 0
        assert compare_labels("9", "10") < 0
        assert compare_labels("2.5", 2) > 0

    def test_text_labels_compare_as_text(self):
        assert compare_labels("b", "a") > 0
        assert compare_labels("a", "a") == 0

    def test_none_sorts_first(self):
        options = [{"label": "b"}, {"label": None}, {"label": "a"}]

        assert sort_by_label(options) == [{"label": None}, {"label": "a"}, {"label": "b"}]

    def test_order_columns_skips_selected(self):
        assert order_columns("name asc, city DESC", ["id", "name"]) == ["city"]


class TestOptions:

    def test_table_options_sorted_by_label(self, sites_db):
        options = Options().table("sites").value("id").label("name")

        assert options.exec(sites_db) == [
            {"label": "East", "value": 2},
            {"label": "North", "value": 1},
            {"label": "West", "value": 3},
        ]

    def test_several_label_columns_are_joined(self, sites_db):
        options = Options().table("sites").value("id").label(["name", "city"]).order("id asc")

        assert options.exec(sites_db) == [
            {"label": "North Leeds", "value": 1},
            {"label": "East Hull", "value": 2},
            {"label": "West ", "value": 3},
        ]

    def test_where_render_and_limit(self, sites_db):
        options = (
            Options()
            .table("sites")
            .value("id")
            .label("name")
            .where({"city": None})
            .render(lambda row: row["name"].lower())
            .limit(5)
        )

        assert options.exec(sites_db) == [{"label": "west", "value": 3}]

    def test_manual_options_are_appended(self, sites_db):
        options = Options().table("sites").value("id").label("name").where({"id": 1}).add("Other", 0).add("Any")

        assert options.exec(sites_db) == [
            {"label": "Any", "value": "Any"},
            {"label": "North", "value": 1},
            {"label": "Other", "value": 0},
        ]

    def test_function_provider(self, sites_db):
        options = Options().fn(lambda db: [{"label": "x", "value": db.count("sites")}])

        assert options.exec(sites_db) == [{"label": "x", "value": 3}]

    def test_refresh_and_search_only(self, sites_db):
        static = Options().table("sites").value("id").label("name").always_refresh(False)
        search = Options().table("sites").value("id").label("name").search_only()

        assert static.exec(sites_db, refresh=True) is None
        assert len(static.exec(sites_db)) == 3
        assert search.exec(sites_db) is None
        assert len(search.exec(sites_db, search=True)) == 3

    def test_host_collects_field_options(self, sites_db):
        host = EditorHost(
            sites_db,
            "users",
            fields=[
                Field("first_name"),
                Field("site").options("sites", "id", "name", where={"city": "Hull"}),
            ],
        )

        assert host.options() == {"site": [{"label": "East", "value": 2}]}


class TestSearchPaneOptions:

    @pytest.fixture
    def host(self, sites_db):
        return EditorHost(
            sites_db,
            "users",
            fields=[Field("first_name"), Field("site").search_pane_options(SearchPaneOptions())],
        )

    def test_counts_follow_the_selections(self, host):
        panes = host.search_pane_options({"searchPanes": {"site": ["1", "99"]}})

        assert panes == {"site": [
            {"label": 1, "total": 2, "value": 1, "count": 2},
            {"label": 2, "total": 0, "value": 2, "count": 0},
        ]}

    def test_last_changed_pane_ignores_its_own_selection(self, host):
        panes = host.search_pane_options({"searchPanes": {"site": ["1"]}, "searchPanesLast": "site"})

        assert [option["count"] for option in panes["site"]] == [2, 1]

    def test_totals_and_labels_from_a_joined_table(self, sites_db):
        pane = (
            SearchPaneOptions()
            .table("users")
            .value("users.site")
            .label("sites.name")
            .left_join("sites", "sites.id", "=", "users.site")
        )
        host = EditorHost(sites_db, "users", fields=[Field("site").search_pane_options(pane)])

        panes = host.search_pane_options({"searchPanes_options": {"viewTotal": "true", "viewCount": "false"}})

        assert panes["site"] == [
            {"label": "East", "total": 1, "value": 2, "count": 1},
            {"label": "North", "total": 2, "value": 1, "count": 2},
        ]

    def test_callable_provider(self, sites_db):
        host = EditorHost(
            sites_db,
            "users",
            fields=[Field("site").search_pane_options(lambda db, host: [{"label": "fixed"}])],
        )

        assert host.search_pane_options({}) == {"site": [{"label": "fixed"}]}

    def test_null_selections_are_counted(self, sites_db, statements):
        sites_db.insert("users", {"first_name": "Di", "site": None})
        host = EditorHost(sites_db, "users", fields=[Field("site").search_pane_options(SearchPaneOptions())])
        captured = statements(sites_db)

        panes = host.search_pane_options({
            "searchPanes": {"site": ["", "1"]},
            "searchPanes_null": {"site": {"0": "true"}},
        })

        assert panes == {"site": [
            {"label": None, "total": 1, "value": None, "count": 1},
            {"label": 1, "total": 2, "value": 1, "count": 2},
            {"label": 2, "total": 0, "value": 2, "count": 0},
        ]}
        assert "IS NULL OR" in " ".join(captured[-1]["query"].split())

    def test_null_flags_as_a_list(self, sites_db):
        sites_db.insert("users", {"first_name": "Di", "site": None})
        host = EditorHost(sites_db, "users", fields=[Field("site").search_pane_options(SearchPaneOptions())])

        panes = host.search_pane_options({
            "searchPanes": {"site": ["2", ""]},
            "searchPanes_null": {"site": ["false", "true"]},
        })

        assert [option["count"] for option in panes["site"]] == [1, 0, 1]

    @pytest.mark.parametrize("field", [Field("site").get(False), Field("site").get_value(7)])
    def test_fields_not_read_from_the_table_have_no_pane(self, sites_db, statements, field):
        host = EditorHost(sites_db, "users", fields=[field.search_pane_options(SearchPaneOptions())])
        captured = statements(sites_db)

        assert host.search_pane_options({}) == {"site": []}
        assert captured == []


class TestSearchBuilderOptions:

    def test_distinct_values_sorted_by_label(self, sites_db):
        host = EditorHost(
            sites_db,
            "users",
            fields=[Field("first_name").search_builder_options(SearchBuilderOptions()), Field("site")],
        )

        assert host.search_builder_options({}) == {"first_name": [
            {"value": "Ann", "label": "Ann"},
            {"value": "Bob", "label": "Bob"},
            {"value": "Cy", "label": "Cy"},
        ]}

    def test_where_and_render(self, sites_db):
        builder = SearchBuilderOptions().table("sites").value("id").label("name").where({"city": "Leeds"})
        builder.render(lambda label: label.upper())
        host = EditorHost(sites_db, "users", fields=[Field("site").search_builder_options(builder)])

        assert host.search_builder_options({}) == {"site": [{"value": 1, "label": "NORTH"}]}

    @pytest.mark.parametrize("field", [Field("site").get(False), Field("site").get_value(7)])
    def test_fields_not_read_from_the_table_have_no_options(self, sites_db, statements, field):
        host = EditorHost(sites_db, "users", fields=[field.search_builder_options(SearchBuilderOptions())])
        captured = statements(sites_db)

        assert host.search_builder_options({}) == {"site": []}
        assert captured == []
