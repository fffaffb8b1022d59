"""Table definitions and the fluent builder used to declare them."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from fhirschema.exceptions import DanglingColumnError, DefinitionError, PreconditionError
from fhirschema.model.objects import (
    INITIAL_VERSION,
    DatabaseObject,
    SessionVariable,
    Tablespace,
)
from fhirschema.model.privileges import GroupPrivilege
from fhirschema.types import ColumnName, ColumnType, ObjectKind, ObjectName, SchemaName

if TYPE_CHECKING:
    from fhirschema.model.physical import PhysicalDataModel

__all__ = ["ColumnDef", "IndexDef", "PrimaryKeyDef", "Table", "TableBuilder"]


@dataclass(frozen=True)
class ColumnDef:
    """Column definition. size is the max length for VARCHAR/CHAR/BLOB."""

    name: ColumnName
    column_type: ColumnType
    nullable: bool = True
    size: Optional[int] = None


@dataclass(frozen=True)
class IndexDef:
    """Index over ordered key columns, optionally carrying INCLUDE columns."""

    name: str
    columns: tuple[ColumnName, ...]
    include_columns: tuple[ColumnName, ...] = ()
    unique: bool = False


@dataclass(frozen=True)
class PrimaryKeyDef:
    name: str
    columns: tuple[ColumnName, ...]


class Table(DatabaseObject):
    """Immutable table definition produced by TableBuilder."""

    kind = ObjectKind.TABLE

    def __init__(
        self,
        schema_name: SchemaName,
        object_name: ObjectName,
        version: int,
        columns: Iterable[ColumnDef],
        primary_key: Optional[PrimaryKeyDef] = None,
        indexes: Iterable[IndexDef] = (),
        tablespace: Optional[Tablespace] = None,
        tenant_column_name: Optional[ColumnName] = None,
        access_control_variable: Optional[SessionVariable] = None,
    ):
        super().__init__(schema_name, object_name, version)
        self.columns = tuple(columns)
        self.primary_key = primary_key
        self.indexes = tuple(indexes)
        self.tablespace = tablespace
        self.tenant_column_name = tenant_column_name
        self.access_control_variable = access_control_variable

    @staticmethod
    def builder(schema_name: SchemaName, table_name: ObjectName) -> "TableBuilder":
        return TableBuilder(schema_name, table_name)

    @property
    def is_tenant_scoped(self) -> bool:
        return self.tenant_column_name is not None

    @property
    def has_access_control(self) -> bool:
        return self.access_control_variable is not None

    def get_column(self, name: ColumnName) -> Optional[ColumnDef]:
        """Get a column by name."""
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def column_names(self) -> list[ColumnName]:
        return [c.name for c in self.columns]


@dataclass
class TableBuilder:
    """Fluent construction of a Table.

    Nothing is validated until build(), which checks that every index and
    primary key column was declared, that an access control variable is
    already registered in the model, and then registers the table.
    """

    schema_name: SchemaName
    table_name: ObjectName
    version: int = INITIAL_VERSION
    _columns: list[ColumnDef] = field(default_factory=list)
    _indexes: list[IndexDef] = field(default_factory=list)
    _primary_key: Optional[PrimaryKeyDef] = None
    _tablespace: Optional[Tablespace] = None
    _tenant_column_name: Optional[ColumnName] = None
    _access_control_variable: Optional[SessionVariable] = None
    _privileges: list[GroupPrivilege] = field(default_factory=list)
    _dependencies: list[DatabaseObject] = field(default_factory=list)

    def set_version(self, version: int) -> "TableBuilder":
        self.version = version
        return self

    def set_tenant_column_name(self, name: ColumnName) -> "TableBuilder":
        self._tenant_column_name = name
        return self

    def add_int_column(self, name: ColumnName, nullable: bool) -> "TableBuilder":
        return self._add_column(ColumnDef(name, ColumnType.INT, nullable))

    def add_bigint_column(self, name: ColumnName, nullable: bool) -> "TableBuilder":
        return self._add_column(ColumnDef(name, ColumnType.BIGINT, nullable))

    def add_double_column(self, name: ColumnName, nullable: bool) -> "TableBuilder":
        return self._add_column(ColumnDef(name, ColumnType.DOUBLE, nullable))

    def add_timestamp_column(self, name: ColumnName, nullable: bool) -> "TableBuilder":
        return self._add_column(ColumnDef(name, ColumnType.TIMESTAMP, nullable))

    def add_varchar_column(
        self, name: ColumnName, size: int, nullable: bool
    ) -> "TableBuilder":
        return self._add_column(ColumnDef(name, ColumnType.VARCHAR, nullable, size))

    def add_char_column(
        self, name: ColumnName, size: int, nullable: bool
    ) -> "TableBuilder":
        return self._add_column(ColumnDef(name, ColumnType.CHAR, nullable, size))

    def add_blob_column(
        self, name: ColumnName, size: int, nullable: bool
    ) -> "TableBuilder":
        return self._add_column(ColumnDef(name, ColumnType.BLOB, nullable, size))

    def add_index(
        self,
        name: str,
        columns: Iterable[ColumnName] | ColumnName,
        include_columns: Iterable[ColumnName] = (),
    ) -> "TableBuilder":
        self._indexes.append(
            IndexDef(name, _as_tuple(columns), tuple(include_columns), unique=False)
        )
        return self

    def add_unique_index(
        self,
        name: str,
        columns: Iterable[ColumnName] | ColumnName,
        include_columns: Iterable[ColumnName] = (),
    ) -> "TableBuilder":
        self._indexes.append(
            IndexDef(name, _as_tuple(columns), tuple(include_columns), unique=True)
        )
        return self

    def add_primary_key(
        self, name: str, columns: Iterable[ColumnName] | ColumnName
    ) -> "TableBuilder":
        if self._primary_key is not None:
            raise DefinitionError(
                f"Table {self.table_name} already has primary key "
                f"{self._primary_key.name}"
            )
        self._primary_key = PrimaryKeyDef(name, _as_tuple(columns))
        return self

    def set_tablespace(self, tablespace: Tablespace) -> "TableBuilder":
        self._tablespace = tablespace
        return self

    def add_privileges(self, privileges: Iterable[GroupPrivilege]) -> "TableBuilder":
        self._privileges.extend(privileges)
        return self

    def add_dependencies(self, deps: Iterable[DatabaseObject]) -> "TableBuilder":
        self._dependencies.extend(deps)
        return self

    def enable_access_control(
        self, variable: Optional[SessionVariable]
    ) -> "TableBuilder":
        """Restrict rows to those whose tenant column matches the variable."""
        if variable is None:
            raise PreconditionError(
                f"Table {self.table_name}: access control needs a session variable"
            )
        self._access_control_variable = variable
        return self

    def build(self, model: "PhysicalDataModel", register: bool = True) -> Table:
        """Validate and create the table, registering it in model.

        Pass register=False for tables that are members of an ObjectGroup;
        the group is registered instead.
        """
        self._validate(model)

        table = Table(
            self.schema_name,
            self.table_name,
            self.version,
            columns=self._columns,
            primary_key=self._primary_key,
            indexes=self._indexes,
            tablespace=self._tablespace,
            tenant_column_name=self._tenant_column_name,
            access_control_variable=self._access_control_variable,
        )
        table.add_privileges(self._privileges)
        table.add_dependencies(self._dependencies)
        if self._tablespace is not None:
            table.add_dependencies([self._tablespace])
        if self._access_control_variable is not None:
            table.add_dependencies([self._access_control_variable])

        if register:
            model.add_table(table)
        return table

    def _add_column(self, column: ColumnDef) -> "TableBuilder":
        if any(c.name == column.name for c in self._columns):
            raise DefinitionError(
                f"Duplicate column name '{column.name}' in table '{self.table_name}'"
            )
        if column.column_type in (ColumnType.VARCHAR, ColumnType.CHAR, ColumnType.BLOB):
            if column.size is None or column.size <= 0:
                raise DefinitionError(
                    f"Column '{column.name}' in table '{self.table_name}' "
                    f"needs a positive size"
                )
        self._columns.append(column)
        return self

    def _validate(self, model: "PhysicalDataModel") -> None:
        if not self._columns:
            raise DefinitionError(f"Table {self.table_name} has no columns")

        declared = {c.name for c in self._columns}
        if self._tenant_column_name in declared:
            raise DefinitionError(
                f"Tenant column '{self._tenant_column_name}' of table "
                f"'{self.table_name}' is implicit and must not be declared"
            )

        if self._primary_key is not None:
            self._check_columns(self._primary_key.name, self._primary_key.columns, declared)
        for index in self._indexes:
            if not index.columns:
                raise DefinitionError(f"Index {index.name} has no key columns")
            self._check_columns(index.name, index.columns, declared)
            self._check_columns(index.name, index.include_columns, declared)

        variable = self._access_control_variable
        if variable is not None:
            if self._tenant_column_name is None:
                raise DefinitionError(
                    f"Table {self.table_name}: access control requires a tenant column"
                )
            if not model.contains(variable):
                raise PreconditionError(
                    f"Table {self.table_name}: session variable "
                    f"{variable.qualified_name} must be registered before "
                    f"access control can be enabled"
                )

    def _check_columns(
        self, owner: str, columns: Iterable[ColumnName], declared: set[ColumnName]
    ) -> None:
        missing = [c for c in columns if c not in declared]
        if missing:
            raise DanglingColumnError(
                f"{owner} on table '{self.table_name}' references undeclared "
                f"column(s): {', '.join(missing)}"
            )


def _as_tuple(columns: Iterable[ColumnName] | ColumnName) -> tuple[ColumnName, ...]:
    if isinstance(columns, str):
        return (columns,)
    return tuple(columns)
