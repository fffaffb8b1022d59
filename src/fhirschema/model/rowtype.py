"""Structured row types and bounded arrays of rows.

These batch multi-valued search parameters into a single stored procedure
call. Building a type does not register it; the caller adds it to the model.
"""

from typing import Optional

from fhirschema.exceptions import BatchLimitError, DefinitionError
from fhirschema.model.objects import INITIAL_VERSION, DatabaseObject
from fhirschema.model.table import ColumnDef
from fhirschema.types import ColumnName, ColumnType, ObjectKind, ObjectName, SchemaName

ARRAY_SIZE = 256

__all__ = ["ARRAY_SIZE", "RowType", "RowArrayType", "RowTypeBuilder", "check_batch_size"]


class RowType(DatabaseObject):
    """Fixed-layout row type: CREATE TYPE ... AS ROW (...)."""

    kind = ObjectKind.ROW_TYPE

    def __init__(
        self,
        schema_name: SchemaName,
        type_name: ObjectName,
        version: int,
        fields: list[ColumnDef],
    ):
        super().__init__(schema_name, type_name, version)
        if not fields:
            raise DefinitionError(f"Row type {type_name} has no fields")
        self.fields = tuple(fields)


class RowArrayType(DatabaseObject):
    """Array of exactly one row type, with a fixed capacity."""

    kind = ObjectKind.ROW_ARRAY_TYPE

    def __init__(
        self,
        schema_name: SchemaName,
        type_name: ObjectName,
        version: int,
        row_type: RowType,
        capacity: int = ARRAY_SIZE,
    ):
        super().__init__(schema_name, type_name, version)
        if not isinstance(row_type, RowType):
            raise DefinitionError(
                f"Array type {type_name} must wrap a RowType, got {type(row_type).__name__}"
            )
        if capacity != ARRAY_SIZE:
            raise DefinitionError(
                f"Array type {type_name} capacity must be {ARRAY_SIZE}, got {capacity}"
            )
        self.row_type = row_type
        self.capacity = capacity
        super().add_dependencies([row_type])


def check_batch_size(array_type: RowArrayType, count: int) -> None:
    """Raise BatchLimitError if count values cannot be passed in one call.

    Callers holding more values must split them into chunks of at most
    array_type.capacity.
    """
    if count > array_type.capacity:
        raise BatchLimitError(
            f"{count} values exceed the {array_type.capacity} element limit "
            f"of {array_type.qualified_name}"
        )


class RowTypeBuilder:
    """Fluent builder for RowType."""

    def __init__(self) -> None:
        self._schema_name: Optional[SchemaName] = None
        self._type_name: Optional[ObjectName] = None
        self._version = INITIAL_VERSION
        self._fields: list[ColumnDef] = []

    def set_schema_name(self, schema_name: SchemaName) -> "RowTypeBuilder":
        self._schema_name = schema_name
        return self

    def set_type_name(self, type_name: ObjectName) -> "RowTypeBuilder":
        self._type_name = type_name
        return self

    def set_version(self, version: int) -> "RowTypeBuilder":
        self._version = version
        return self

    def add_int_column(self, name: ColumnName, nullable: bool) -> "RowTypeBuilder":
        return self._add(ColumnDef(name, ColumnType.INT, nullable))

    def add_bigint_column(self, name: ColumnName, nullable: bool) -> "RowTypeBuilder":
        return self._add(ColumnDef(name, ColumnType.BIGINT, nullable))

    def add_double_column(self, name: ColumnName, nullable: bool) -> "RowTypeBuilder":
        return self._add(ColumnDef(name, ColumnType.DOUBLE, nullable))

    def add_timestamp_column(self, name: ColumnName, nullable: bool) -> "RowTypeBuilder":
        return self._add(ColumnDef(name, ColumnType.TIMESTAMP, nullable))

    def add_varchar_column(
        self, name: ColumnName, size: int, nullable: bool
    ) -> "RowTypeBuilder":
        if size <= 0:
            raise DefinitionError(f"Field '{name}' needs a positive size")
        return self._add(ColumnDef(name, ColumnType.VARCHAR, nullable, size))

    def build(self) -> RowType:
        if not self._schema_name or not self._type_name:
            raise DefinitionError("Row type needs a schema name and a type name")
        return RowType(self._schema_name, self._type_name, self._version, self._fields)

    def _add(self, field: ColumnDef) -> "RowTypeBuilder":
        if any(f.name == field.name for f in self._fields):
            raise DefinitionError(
                f"Duplicate field '{field.name}' in row type '{self._type_name}'"
            )
        self._fields.append(field)
        return self
