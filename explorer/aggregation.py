"""
Категориальные агрегации поверх таблиц датасета в ClickHouse.

Модуль потребляет CountByConfig: без конфигурации считаются строки (count()),
в режиме parent - уникальные значения внешнего ключа на родительскую таблицу
(uniqExact(<fk>)).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Union

from clickhouse_connect.driver import Client

from .count_by import CountByConfig, CountByMode

logger = logging.getLogger(__name__)

EMPTY_LABEL = "(Empty)"
DEFAULT_DATABASE = "biai"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Filter = Mapping[str, Any]
Filters = Union[Sequence[Filter], Filter, None]


class AggregationError(RuntimeError):
    pass


@dataclass(frozen=True)
class CategoryCount:
    value: Any
    count: int
    percentage: float


def validate_identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name or ""):
        raise AggregationError(f"invalid identifier: {name!r}")
    return name


def _literal(value: Any) -> str:
    if value == EMPTY_LABEL:
        return "''"
    if isinstance(value, str):
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def count_expression(
    config: Optional[CountByConfig],
    relationships: Sequence[Mapping[str, Any]] = (),
) -> str:
    """
    Возвращает SQL-выражение подсчёта.

    relationships - связи текущей таблицы в формате загрузчика
    (foreign_key / referenced_table / referenced_column).
    """
    if config is None:
        return "count()"
    if config.mode is CountByMode.PARENT:
        for rel in relationships:
            if rel.get("referenced_table") == config.target_table and rel.get("foreign_key"):
                return f"uniqExact({validate_identifier(rel['foreign_key'])})"
        raise AggregationError(f"no relationship to parent table {config.target_table!r}")
    raise AggregationError(f"unsupported countBy mode {config.mode!r}")


def build_filter_condition(node: Filter) -> str:
    """Рекурсивно строит условие из дерева фильтров (and / or / not / лист)."""
    if node.get("and") is not None:
        return _join([build_filter_condition(f) for f in node["and"]], "AND")
    if node.get("or") is not None:
        return _join([build_filter_condition(f) for f in node["or"]], "OR")
    if node.get("not") is not None:
        inner = build_filter_condition(node["not"])
        return f"NOT ({inner})" if inner else ""

    column = node.get("column")
    operator = node.get("operator")
    if not column or not operator:
        return ""

    col = validate_identifier(column)
    value = node.get("value")
    if operator == "eq":
        return f"{col} = {_literal(value)}"
    if operator == "in":
        values = value if isinstance(value, (list, tuple)) else [value]
        return f"{col} IN ({', '.join(_literal(v) for v in values)})"
    if operator == "gt":
        return f"{col} > {_literal(value)}"
    if operator == "lt":
        return f"{col} < {_literal(value)}"
    if operator == "gte":
        return f"{col} >= {_literal(value)}"
    if operator == "lte":
        return f"{col} <= {_literal(value)}"
    if operator == "between":
        low, high = value
        return f"{col} BETWEEN {_literal(low)} AND {_literal(high)}"
    return ""


def _join(conditions: List[str], op: str) -> str:
    conditions = [c for c in conditions if c]
    if not conditions:
        return ""
    if len(conditions) == 1:
        return conditions[0]
    return "(" + f" {op} ".join(conditions) + ")"


def build_where_clause(filters: Filters) -> str:
    """Фрагмент для подстановки после "WHERE 1=1"; список фильтров трактуется как AND."""
    if not filters:
        return ""
    if isinstance(filters, Mapping):
        tree: Filter = filters
    elif len(filters) == 1:
        tree = filters[0]
    else:
        tree = {"and": list(filters)}
    condition = build_filter_condition(tree)
    return f"AND ({condition})" if condition else ""


class AggregationService:
    """Считает распределения значений колонки с учётом фильтров и countBy."""

    def __init__(self, client: Client, database: str = DEFAULT_DATABASE) -> None:
        self.client = client
        self.database = validate_identifier(database)

    def categorical_counts(
        self,
        table: str,
        column: str,
        *,
        filters: Filters = None,
        count_by: Optional[CountByConfig] = None,
        relationships: Sequence[Mapping[str, Any]] = (),
        limit: int = 50,
    ) -> List[CategoryCount]:
        source = f"{self.database}.{validate_identifier(table)}"
        col = validate_identifier(column)
        counter = count_expression(count_by, relationships)
        where = build_where_clause(filters)

        total_rows = self.client.query(
            f"SELECT {counter} AS total FROM {source} WHERE 1=1 {where}"
        ).result_rows
        total = int(total_rows[0][0]) if total_rows else 0

        query = (
            f"SELECT if({col} = '', '{EMPTY_LABEL}', {col}) AS value, {counter} AS count "
            f"FROM {source} "
            f"WHERE {col} IS NOT NULL {where} "
            f"GROUP BY {col} "
            f"ORDER BY count DESC "
            f"LIMIT {int(limit)}"
        )
        logger.debug("categorical aggregation table=%s column=%s count_by=%s", table, column, count_by)
        rows = self.client.query(query).result_rows
        return [
            CategoryCount(
                value=value,
                count=int(count),
                percentage=(int(count) * 100.0 / total) if total else 0.0,
            )
            for value, count in rows
        ]