"""Unit tests for SELECT statement building."""

import re

import pytest
import sqlglot
from sqlglot import exp

from dal.errors import NO_PRIMARY_KEY, InvalidIdentifierError, NoPrimaryKeyError
from dal.query_builder import ListOptions, QueryBuilder, QueryObject


def test_select_by_id_postgres(orders_table) -> None:
    """Primary-key lookups bind the id as the only parameter."""
    query = QueryBuilder("orders", orders_table, "postgres").build_select_by_id(42)
    assert query.text == 'SELECT * FROM "orders" WHERE "id" = $1'
    assert query.values == [42]


def test_select_by_id_coerces_string_ids_on_postgres(orders_table) -> None:
    """Path parameters arrive as strings; asyncpg needs the column type."""
    query = QueryBuilder("orders", orders_table, "postgres").build_select_by_id("42")
    assert query.values == [42]


def test_select_by_id_mysql_keeps_raw_value(orders_table) -> None:
    """MySQL converts implicitly, so the raw value is bound."""
    query = QueryBuilder("orders", orders_table, "mysql").build_select_by_id("42")
    assert query.text == "SELECT * FROM `orders` WHERE `id` = ?"
    assert query.values == ["42"]


def test_select_by_id_requires_primary_key(audit_log_table) -> None:
    """Tables without a primary key cannot be addressed by id."""
    with pytest.raises(NoPrimaryKeyError) as exc_info:
        QueryBuilder("audit_log", audit_log_table).build_select_by_id(1)
    assert exc_info.value.reason_code == NO_PRIMARY_KEY


def test_select_with_filters_mysql(users_table) -> None:
    """Filters render in order with positional placeholders."""
    query = QueryBuilder("users", users_table, "mysql").build_select({"age__gte": 18, "name": "Ann"})
    assert query.text == "SELECT * FROM `users` WHERE `age` >= ? AND `name` = ?"
    assert query.values == [18, "Ann"]

    parsed = sqlglot.parse_one(query.text, read="mysql")
    assert isinstance(parsed, exp.Select)
    assert parsed.find(exp.Table).name == "users"


def test_select_full_options_postgres(users_table) -> None:
    """Filters, sort and pagination share one placeholder sequence."""
    query = QueryBuilder("users", users_table, "postgres").build_select(
        {"age__gte": "18", "name__contains": "an"},
        limit="10",
        offset="20",
        order_by="name",
        order_dir="desc",
    )
    assert query.text == (
        'SELECT * FROM "users" WHERE "age" >= $1 AND "name" LIKE $2 '
        'ORDER BY "name" DESC LIMIT $3 OFFSET $4'
    )
    assert query.values == [18, "%an%", 10, 20]


def test_placeholder_index_matches_value_position(users_table) -> None:
    """$n refers to values[n-1] and every index appears once."""
    query = QueryBuilder("users", users_table, "postgres").build_select(
        {"age__gt": 1, "age__lt": 99, "name__startswith": "A", "active": "true"}, limit=5
    )
    indices = [int(match) for match in re.findall(r"\$(\d+)", query.text)]
    assert indices == list(range(1, len(query.values) + 1))
    assert query.values == [1, 99, "A%", True, 5]


def test_select_without_filters(users_table) -> None:
    """No filters means no WHERE clause."""
    query = QueryBuilder("users", users_table).build_select()
    assert query == QueryObject('SELECT * FROM "users"', [])


@pytest.mark.parametrize("limit", [None, "", "abc", "0", 0, -5, "-1", "1.5", True])
def test_invalid_or_empty_limits_are_omitted(users_table, limit) -> None:
    """Pagination values that are not positive integers are left out."""
    query = QueryBuilder("users", users_table).build_select(limit=limit, offset=limit)
    assert query.text == 'SELECT * FROM "users"'
    assert query.values == []


def test_order_by_unknown_column_is_ignored(users_table) -> None:
    """Sorting only applies to real columns."""
    query = QueryBuilder("users", users_table).build_select(order_by="secret; DROP", order_dir="DESC")
    assert "ORDER BY" not in query.text


@pytest.mark.parametrize("direction,expected", [("desc", "DESC"), ("DESC", "DESC"), ("asc", "ASC"), ("sideways", "ASC"), (None, "ASC")])
def test_order_direction(users_table, direction, expected) -> None:
    """Only DESC (any case) sorts descending."""
    query = QueryBuilder("users", users_table).build_select(order_by="age", order_dir=direction)
    assert query.text == f'SELECT * FROM "users" ORDER BY "age" {expected}'


def test_json_filter_postgres(users_table) -> None:
    """JSON columns compare as jsonb documents."""
    query = QueryBuilder("users", users_table, "postgres").build_select({"profile": '{"tier":"gold"}'})
    assert query.text == 'SELECT * FROM "users" WHERE "profile"::jsonb = $1::jsonb'
    assert query.values == ['{"tier": "gold"}']


def test_json_filter_mysql_text_fallback(users_table) -> None:
    """Unparseable JSON values compare against the column's text rendering."""
    query = QueryBuilder("users", users_table, "mysql").build_select({"profile": "gold"})
    assert query.text == "SELECT * FROM `users` WHERE CAST(`profile` AS CHAR) = ?"
    assert query.values == ["gold"]


def test_mysql_timestamp_filter_values_are_normalized(users_table) -> None:
    """ISO timestamps become DATETIME literals on MySQL."""
    query = QueryBuilder("users", users_table, "mysql").build_select(
        {"created_at__gte": "2024-01-02T03:04:05Z"}
    )
    assert query.values == ["2024-01-02 03:04:05"]


def test_invalid_table_name_is_rejected(users_table) -> None:
    """The table name itself is sanitized."""
    with pytest.raises(InvalidIdentifierError):
        QueryBuilder("users; DROP TABLE users", users_table).build_select()


def test_builder_params_are_per_instance(users_table) -> None:
    """Each builder starts numbering at $1."""
    first = QueryBuilder("users", users_table).build_select({"age": 1})
    second = QueryBuilder("users", users_table).build_select({"age": 2})
    assert first.text == second.text == 'SELECT * FROM "users" WHERE "age" = $1'


def test_add_param_and_get_params(users_table) -> None:
    """add_param returns the next placeholder and records the value."""
    builder = QueryBuilder("users", users_table, "postgres")
    assert builder.add_param("a") == "$1"
    assert builder.add_param({"k": [1]}) == "$2"
    assert builder.get_params() == ["a", '{"k": [1]}']


def test_is_valid_column(users_table) -> None:
    """Only real column names are valid."""
    builder = QueryBuilder("users", users_table)
    assert builder.is_valid_column("name")
    assert not builder.is_valid_column("nope")
    assert not builder.is_valid_column(None)


def test_query_object_as_dict(users_table) -> None:
    """The HTTP-facing shape is {text, values}."""
    query = QueryBuilder("users", users_table).build_select_by_id(1)
    assert query.as_dict() == {"text": 'SELECT * FROM "users" WHERE "id" = $1', "values": [1]}


def test_list_options_from_query_params() -> None:
    """Reserved keys become options; the rest are filters."""
    filters, options = ListOptions.from_query_params(
        {
            "limit": ["10", "20"],
            "offset": "5",
            "orderBy": "name",
            "orderDir": "desc",
            "age__gt": ["18"],
            "name": "Ann",
        }
    )
    assert filters == {"age__gt": "18", "name": "Ann"}
    assert options == ListOptions(limit="10", offset="5", order_by="name", order_dir="desc")


def test_list_options_snake_case_and_defaults() -> None:
    """snake_case keys are accepted and direction defaults to ASC."""
    filters, options = ListOptions.from_query_params({"order_by": "age"})
    assert filters == {}
    assert options.order_by == "age"
    assert options.order_dir == "ASC"
    assert ListOptions.from_query_params(None) == ({}, ListOptions())
