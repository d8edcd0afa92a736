"""MySQL-backed DAL components."""

from .param_translation import translate_qmark_params_to_mysql
from .query_target import MysqlQueryTarget
from .schema_introspector import MysqlSchemaIntrospector, parse_enum_options

__all__ = [
    "MysqlQueryTarget",
    "MysqlSchemaIntrospector",
    "parse_enum_options",
    "translate_qmark_params_to_mysql",
]
