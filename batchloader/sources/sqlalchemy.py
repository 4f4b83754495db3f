from typing import (
    Any,
    Iterable,
    List,
    Optional,
    Tuple,
)

import sqlalchemy
from sqlalchemy.engine import Engine, Row
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import BinaryExpression
from sqlalchemy.sql.expression import ColumnElement, FromClause

from ..error import ConfigurationError


def _from_clause_repr(from_clause: FromClause) -> str:
    if isinstance(from_clause, sqlalchemy.Table):
        return "Table({!r}, schema={!r})".format(
            from_clause.name, from_clause.schema
        )
    return repr(from_clause)


class RowsQuery:
    """Query function which loads rows by the values of the key column

    By default rows are loaded by primary key::

        users_query = RowsQuery(sa_engine, users_table)
        load_user = make(users_query, users_query.key, key_type=int)

    With a foreign key column, rows are usually loaded as lists::

        orders_query = RowsQuery(sa_engine, orders_table,
                                 key_column=orders_table.c.user_id)
        load_orders = make(orders_query, orders_query.key, key_type=int,
                           result_type=List[Row])

    """

    def __init__(
        self,
        engine: Engine,
        from_clause: FromClause,
        *,
        key_column: Optional[sqlalchemy.Column] = None,
    ) -> None:
        if key_column is None:
            # currently only one column supported
            primary_key = list(from_clause.primary_key)
            if len(primary_key) != 1:
                raise ConfigurationError(
                    "{} should have exactly one primary key column, "
                    "otherwise key_column is required".format(
                        _from_clause_repr(from_clause)
                    )
                )
            (key_column,) = primary_key
        elif (
            isinstance(from_clause, sqlalchemy.Table)
            and key_column.table is not from_clause
        ):
            raise ConfigurationError(
                "key_column should belong to {}".format(
                    _from_clause_repr(from_clause)
                )
            )
        self.engine = engine
        self.from_clause = from_clause
        self.key_column = key_column

    def __repr__(self) -> str:
        return "<{}.{}: from_clause={}, key_column={!r}>".format(
            self.__class__.__module__,
            self.__class__.__name__,
            _from_clause_repr(self.from_clause),
            self.key_column,
        )

    def in_impl(
        self, column: ColumnElement, values: Iterable
    ) -> BinaryExpression:
        return column.in_(values)

    def select_expr(self, keys: Iterable) -> Select:
        return sqlalchemy.select(self.from_clause).where(
            self.in_impl(self.key_column, keys)
        )

    def key(self, row: Row) -> Any:
        return row._mapping[self.key_column]

    def __call__(self, keys: List[Any]) -> List[Row]:
        if not keys:
            return []

        with self.engine.connect() as connection:
            return list(connection.execute(self.select_expr(keys)).fetchall())


class CountQuery:
    """Query function which counts rows by the values of the key column

    Keys without rows are counted as zero::

        count_query = CountQuery(sa_engine, orders_table.c.user_id)
        load_orders_count = make(count_query, count_query.key,
                                 key_type=int, result_type=int)

    """

    def __init__(
        self,
        engine: Engine,
        key_column: sqlalchemy.Column,
    ) -> None:
        self.engine = engine
        self.key_column = key_column

    def __repr__(self) -> str:
        return "<{}.{}: key_column={!r}>".format(
            self.__class__.__module__,
            self.__class__.__name__,
            self.key_column,
        )

    def in_impl(
        self, column: ColumnElement, values: Iterable
    ) -> BinaryExpression:
        return column.in_(values)

    def select_expr(self, keys: Iterable) -> Select:
        return (
            sqlalchemy.select(
                self.key_column.label("key"),
                sqlalchemy.func.count().label("count"),
            )
            .where(self.in_impl(self.key_column, keys))
            .group_by(self.key_column)
        )

    def key(self, row: Row) -> Tuple[Any, int]:
        return row[0], row[1]

    def __call__(self, keys: List[Any]) -> List[Row]:
        if not keys:
            return []

        with self.engine.connect() as connection:
            return list(connection.execute(self.select_expr(keys)).fetchall())
