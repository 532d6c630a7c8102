from catalog_api.query import (
    AnyOf,
    ArrayContains,
    Eq,
    In,
    LegacyGrantMention,
    OrderBy,
    TextSearch,
    build_query,
    path,
)


def test_path_quotes_each_segment():
    assert path("access.users") == 'c["access"]["users"]'


def test_filters_are_parameterised_and_anded():
    query, params = build_query([Eq("ownerId", "u1"), ArrayContains("tags", "books")])
    assert query == (
        'SELECT * FROM c WHERE c["ownerId"] = @p0 AND ARRAY_CONTAINS(c["tags"], @p1)'
    )
    assert params == [{"name": "@p0", "value": "u1"}, {"name": "@p1", "value": "books"}]


def test_eq_none_matches_missing_or_null():
    query, params = build_query([Eq("version", None)])
    assert "NOT IS_DEFINED(c[\"version\"])" in query
    assert params == []


def test_order_and_pagination():
    query, _ = build_query(
        order_by=[OrderBy("updatedAt", descending=True), OrderBy("id", descending=True)],
        offset=40,
        limit=20,
    )
    assert query.endswith('ORDER BY c["updatedAt"] DESC, c["id"] DESC OFFSET 40 LIMIT 20')


def test_count_ignores_order_and_limit():
    query, _ = build_query([Eq("inventoryId", "i1")], [OrderBy("id")], offset=0, limit=5, count=True)
    assert query == 'SELECT VALUE COUNT(1) FROM c WHERE c["inventoryId"] = @p0'


def test_empty_in_matches_nothing():
    query, params = build_query([In("id", ())])
    assert query == "SELECT * FROM c WHERE false"
    assert params == []


def test_text_search_covers_fields_and_array_elements():
    query, params = build_query([TextSearch(("title", "description"), "lamp", array_fields=("tags",))])
    assert 'CONTAINS(c["title"], @p0, true)' in query
    assert 'CONTAINS(c["description"], @p0, true)' in query
    assert 'EXISTS(SELECT VALUE t FROM t IN c["tags"] WHERE CONTAINS(t, @p0, true))' in query
    assert params == [{"name": "@p0", "value": "lamp"}]


def test_legacy_mention_checks_map_array_and_nested_users():
    query, params = build_query([LegacyGrantMention("u1")])
    assert 'IS_DEFINED(c["access"][@p0])' in query
    assert 'FROM a IN c["access"]' in query
    assert 'FROM u IN c["access"]["users"]' in query
    assert params == [{"name": "@p0", "value": "u1"}]


def test_any_of_joins_with_or():
    query, _ = build_query([AnyOf((Eq("a", 1), Eq("b", 2)))])
    assert query == 'SELECT * FROM c WHERE (c["a"] = @p0 OR c["b"] = @p1)'
