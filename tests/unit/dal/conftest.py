"""Shared schema fixtures for DAL unit tests."""

from typing import Any, Dict, List

import pytest

from dal.query_result import WriteResult
from schema import ColumnDef, ForeignKeyDef, ReverseForeignKeyDef, TableDef


def _col(name: str, data_type: str, **kwargs: Any) -> ColumnDef:
    return ColumnDef(name=name, data_type=data_type, **kwargs)


@pytest.fixture
def users_table() -> TableDef:
    """Users with a JSON profile and a has-many link from orders."""
    return TableDef(
        name="users",
        columns=[
            _col("id", "integer", is_nullable=False, is_auto_increment=True),
            _col("name", "character varying", max_length=100),
            _col("age", "integer"),
            _col("profile", "jsonb"),
            _col("active", "boolean"),
            _col("created_at", "timestamp without time zone"),
        ],
        primary_keys=["id"],
        reverse_foreign_keys=[
            ReverseForeignKeyDef(
                referencing_table="orders",
                referencing_column="user_id",
                referenced_column="id",
            )
        ],
    )


@pytest.fixture
def orders_table() -> TableDef:
    """Orders belong to users and have many order_items."""
    return TableDef(
        name="orders",
        columns=[
            _col("id", "integer", is_nullable=False, is_auto_increment=True),
            _col("user_id", "integer"),
            _col("total", "numeric", precision=10, scale=2),
            _col("status", "character varying"),
        ],
        primary_keys=["id"],
        foreign_keys=[
            ForeignKeyDef(column_name="user_id", foreign_table_name="users", foreign_column_name="id")
        ],
        reverse_foreign_keys=[
            ReverseForeignKeyDef(
                referencing_table="order_items",
                referencing_column="order_id",
                referenced_column="id",
            )
        ],
    )


@pytest.fixture
def products_table() -> TableDef:
    """Products referenced by order_items."""
    return TableDef(
        name="products",
        columns=[
            _col("id", "integer", is_nullable=False),
            _col("name", "text"),
            _col("price", "numeric"),
        ],
        primary_keys=["id"],
        reverse_foreign_keys=[
            ReverseForeignKeyDef(
                referencing_table="order_items",
                referencing_column="product_id",
                referenced_column="id",
            )
        ],
    )


@pytest.fixture
def order_items_table() -> TableDef:
    """Join table between orders and products."""
    return TableDef(
        name="order_items",
        columns=[
            _col("id", "integer", is_nullable=False),
            _col("order_id", "integer"),
            _col("product_id", "integer"),
            _col("quantity", "integer"),
        ],
        primary_keys=["id"],
        foreign_keys=[
            ForeignKeyDef(
                column_name="order_id", foreign_table_name="orders", foreign_column_name="id"
            ),
            ForeignKeyDef(
                column_name="product_id", foreign_table_name="products", foreign_column_name="id"
            ),
        ],
    )


@pytest.fixture
def employees_table() -> TableDef:
    """Self-referencing table with two FKs to itself."""
    return TableDef(
        name="employees",
        columns=[
            _col("id", "integer", is_nullable=False),
            _col("name", "text"),
            _col("manager_id", "integer"),
            _col("mentor_id", "integer"),
        ],
        primary_keys=["id"],
        foreign_keys=[
            ForeignKeyDef(
                column_name="manager_id", foreign_table_name="employees", foreign_column_name="id"
            ),
            ForeignKeyDef(
                column_name="mentor_id", foreign_table_name="employees", foreign_column_name="id"
            ),
        ],
        reverse_foreign_keys=[
            ReverseForeignKeyDef(
                referencing_table="employees",
                referencing_column="manager_id",
                referenced_column="id",
            ),
            ReverseForeignKeyDef(
                referencing_table="employees",
                referencing_column="mentor_id",
                referenced_column="id",
            ),
        ],
    )


@pytest.fixture
def audit_log_table() -> TableDef:
    """Table without a primary key."""
    return TableDef(
        name="audit_log",
        columns=[_col("event", "text"), _col("payload", "json")],
    )


@pytest.fixture
def schema_map(
    users_table, orders_table, products_table, order_items_table, employees_table, audit_log_table
) -> Dict[str, TableDef]:
    """All fixture tables keyed by name."""
    return {
        table.name: table
        for table in (
            users_table,
            orders_table,
            products_table,
            order_items_table,
            employees_table,
            audit_log_table,
        )
    }


class FakeExecutor:
    """Records statements and returns canned rows / write results."""

    def __init__(self, provider: str = "postgres", database: str = "shop") -> None:
        from dal.dialects import get_dialect

        self.provider = provider
        self.dialect = get_dialect(provider)
        self.database = database
        self.fetch_calls: List[tuple] = []
        self.execute_calls: List[tuple] = []
        self.fetch_results: List[List[Dict[str, Any]]] = []
        self.write_result = WriteResult()
        self.closed = False

    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        self.fetch_calls.append((sql, params))
        return self.fetch_results.pop(0) if self.fetch_results else []

    async def execute(self, sql: str, *params: Any) -> WriteResult:
        self.execute_calls.append((sql, params))
        return self.write_result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_executor_cls():
    """Expose the fake executor class to tests."""
    return FakeExecutor
