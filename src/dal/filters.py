"""Request filter parsing.

Filter keys follow the ``column__op`` convention (``age__gte=18``); a key with
no recognized suffix is a plain equality filter. Keys that do not name a
column of the target table are dropped, so unrelated query-string keys never
break a request.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from common.observability.metrics import dal_metrics
from schema import TableDef

logger = logging.getLogger(__name__)

JSON_MODE_DOCUMENT = "json"
JSON_MODE_TEXT = "text"

OPERATOR_SQL: Dict[str, str] = {
    "eq": "=",
    "ne": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "like": "LIKE",
    "contains": "LIKE",
    "startswith": "LIKE",
    "endswith": "LIKE",
}

SELECT_OPERATORS: FrozenSet[str] = frozenset(OPERATOR_SQL)
DELETE_OPERATORS: FrozenSet[str] = SELECT_OPERATORS - {"eq", "ne"}

_SUFFIX_PATTERN = re.compile(r"^(.+?)__([a-z]+)$")


@dataclass(frozen=True)
class FilterCondition:
    """One normalized ``column operator value`` term."""

    column: str
    operator: str
    value: Any
    json_mode: Optional[str] = None

    @property
    def is_json(self) -> bool:
        """Return True for JSON-column equality terms."""
        return self.json_mode is not None


def split_filter_key(raw_key: str, allowed_operators: FrozenSet[str] = SELECT_OPERATORS):
    """Split ``column__op`` into ``(column, op)``; ``op`` is None for plain keys."""
    match = _SUFFIX_PATTERN.match(raw_key)
    if match and match.group(2) in allowed_operators:
        return match.group(1), match.group(2)
    return raw_key, None


def parse_filters(
    filters: Optional[Mapping[str, Any]],
    table: TableDef,
    allowed_operators: FrozenSet[str] = SELECT_OPERATORS,
) -> List[FilterCondition]:
    """Normalize a raw filter mapping into ordered conditions for ``table``."""
    conditions: List[FilterCondition] = []
    for raw_key, value in (filters or {}).items():
        if not isinstance(raw_key, str):
            continue
        column, op = split_filter_key(raw_key, allowed_operators)
        if not table.has_column(column):
            logger.debug("filter_dropped table=%s key=%s", table.name, raw_key)
            continue

        if op is None or op == "eq":
            if "json" in (table.column_type(column) or ""):
                conditions.append(_json_equality(table.name, column, value))
            else:
                conditions.append(FilterCondition(column, "=", value))
            continue

        conditions.append(FilterCondition(column, OPERATOR_SQL[op], _pattern_value(op, value)))
    return conditions


def where_to_filters(where: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Translate a request-body ``where`` object into ``column__op`` filter keys.

    Entries are either plain values (equality) or ``{"op": "gte", "val": 18}``.
    Unknown operators fall back to equality.
    """
    filters: Dict[str, Any] = {}
    for column, condition in (where or {}).items():
        if isinstance(condition, Mapping) and "op" in condition and "val" in condition:
            op = condition.get("op")
            key = f"{column}__{op}" if op in DELETE_OPERATORS else column
            filters[key] = condition.get("val")
        else:
            filters[column] = condition
    return filters


def _pattern_value(op: str, value: Any) -> Any:
    if op == "contains":
        return f"%{value}%"
    if op == "startswith":
        return f"{value}%"
    if op == "endswith":
        return f"%{value}"
    return value


def _json_equality(table_name: str, column: str, value: Any) -> FilterCondition:
    try:
        parsed = json.loads(value) if isinstance(value, str) else value
        document = json.dumps(parsed)
    except (TypeError, ValueError):
        logger.warning(
            "json_filter_fallback table=%s column=%s reason=unparseable_value",
            table_name,
            column,
        )
        dal_metrics.increment("dal.filters.json_fallback")
        return FilterCondition(column, "=", str(value), json_mode=JSON_MODE_TEXT)
    return FilterCondition(column, "=", document, json_mode=JSON_MODE_DOCUMENT)
