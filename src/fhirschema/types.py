"""Core type definitions for fhirschema."""

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

SchemaName: TypeAlias = str
ObjectName: TypeAlias = str
ColumnName: TypeAlias = str
GrantGroup: TypeAlias = str

__all__ = [
    "SchemaName",
    "ObjectName",
    "ColumnName",
    "GrantGroup",
    "ObjectKind",
    "ColumnType",
    "Privilege",
    "ObjectKey",
]


class ObjectKind(Enum):
    """Kinds of schema objects the model knows how to order and render."""

    TABLE = "table"
    SEQUENCE = "sequence"
    ROW_TYPE = "row_type"
    ROW_ARRAY_TYPE = "row_array_type"
    PROCEDURE = "procedure"
    VARIABLE = "variable"
    TABLESPACE = "tablespace"
    NOP = "nop"
    GROUP = "group"


class ColumnType(Enum):
    """Semantic column types supported by the table and row type builders."""

    INT = "int"
    BIGINT = "bigint"
    VARCHAR = "varchar"
    CHAR = "char"
    DOUBLE = "double"
    TIMESTAMP = "timestamp"
    BLOB = "blob"


class Privilege(Enum):
    """Closed set of privileges a grant group can hold on an object."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXECUTE = "EXECUTE"
    USAGE = "USAGE"
    READ = "READ"


@dataclass(frozen=True)
class ObjectKey:
    """Identity of a schema object: (schema, name, kind)."""

    schema: SchemaName
    name: ObjectName
    kind: ObjectKind

    def __str__(self) -> str:
        if not self.schema:
            return f"{self.kind.value}:{self.name}"
        return f"{self.kind.value}:{self.schema}.{self.name}"
