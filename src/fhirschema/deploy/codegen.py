"""Render DDL and GRANT statements for schema objects.

Statements are DB2 flavoured and returned without terminators. Procedure
bodies are passed through untouched.
"""

from datetime import datetime
from typing import Iterable

from fhirschema.exceptions import CodegenError
from fhirschema.model.objects import (
    DatabaseObject,
    ObjectGroup,
    Procedure,
    Sequence,
    SessionVariable,
    Tablespace,
)
from fhirschema.model.privileges import check_grant
from fhirschema.model.rowtype import RowArrayType, RowType
from fhirschema.model.table import ColumnDef, IndexDef, Table
from fhirschema.types import ColumnType, ObjectKind

__all__ = ["DdlGenerator", "column_type_sql"]

STATEMENT_TERMINATOR = "@"

_GRANT_TARGETS = {
    ObjectKind.TABLE: "TABLE",
    ObjectKind.SEQUENCE: "SEQUENCE",
    ObjectKind.PROCEDURE: "PROCEDURE",
    ObjectKind.VARIABLE: "VARIABLE",
}


def column_type_sql(col: ColumnDef) -> str:
    """Convert a ColumnDef to its SQL type."""
    if col.column_type == ColumnType.INT:
        return "INT"
    if col.column_type == ColumnType.BIGINT:
        return "BIGINT"
    if col.column_type == ColumnType.DOUBLE:
        return "DOUBLE"
    if col.column_type == ColumnType.TIMESTAMP:
        return "TIMESTAMP"
    if col.column_type == ColumnType.VARCHAR:
        return f"VARCHAR({col.size} OCTETS)"
    if col.column_type == ColumnType.CHAR:
        return f"CHAR({col.size})"
    if col.column_type == ColumnType.BLOB:
        return f"BLOB({col.size})"
    raise CodegenError(f"No SQL type for {col.column_type}")


class DdlGenerator:
    """Generate the statements that create an object and grant access to it."""

    def statements(self, obj: DatabaseObject) -> list[str]:
        """CREATE statements followed by one GRANT per attached privilege."""
        generators = {
            ObjectKind.TABLESPACE: self._gen_tablespace,
            ObjectKind.VARIABLE: self._gen_variable,
            ObjectKind.SEQUENCE: self._gen_sequence,
            ObjectKind.TABLE: self._gen_table,
            ObjectKind.ROW_TYPE: self._gen_row_type,
            ObjectKind.ROW_ARRAY_TYPE: self._gen_row_array_type,
            ObjectKind.PROCEDURE: self._gen_procedure,
            ObjectKind.GROUP: self._gen_group,
            ObjectKind.NOP: lambda _: [],
        }
        generator = generators.get(obj.kind)
        if not generator:
            raise CodegenError(f"No generator for {obj.kind}")
        result = generator(obj)
        if obj.kind != ObjectKind.GROUP:
            result.extend(self.grants(obj))
        return result

    def grants(self, obj: DatabaseObject) -> list[str]:
        target = _GRANT_TARGETS.get(obj.kind)
        result = []
        for gp in obj.privileges:
            check_grant(obj.kind, gp.privilege)
            result.append(
                f"GRANT {gp.privilege.value} ON {target} {obj.qualified_name} TO {gp.group}"
            )
        return result

    def generate(self, waves: Iterable[Iterable[DatabaseObject]], description: str) -> str:
        """Full deployment script, one section per wave."""
        lines = [
            "-- Deployment: Auto-generated",
            f"-- Description: {description}",
            f"-- Generated: {datetime.now().isoformat()}",
            f"-- Statement terminator: {STATEMENT_TERMINATOR}",
            "",
        ]
        for index, wave in enumerate(waves):
            lines.append(f"-- Wave {index}")
            lines.append("")
            for obj in wave:
                lines.append(
                    f"-- {obj.kind.value}: {obj.qualified_name} (version {obj.version})"
                )
                for stmt in self.statements(obj):
                    lines.append(stmt + STATEMENT_TERMINATOR)
                lines.append("")
        return "\n".join(lines)

    def _gen_tablespace(self, ts: Tablespace) -> list[str]:
        return [
            f"CREATE TABLESPACE {ts.object_name} MANAGED BY AUTOMATIC STORAGE "
            f"EXTENTSIZE {ts.extent_size_kb}K"
        ]

    def _gen_variable(self, var: SessionVariable) -> list[str]:
        return [f"CREATE OR REPLACE VARIABLE {var.qualified_name} INT DEFAULT NULL"]

    def _gen_sequence(self, seq: Sequence) -> list[str]:
        cache = f"CACHE {seq.cache}" if seq.cache else "NO CACHE"
        cycle = "CYCLE" if seq.cycle else "NO CYCLE"
        return [
            f"CREATE SEQUENCE {seq.qualified_name} AS BIGINT "
            f"START WITH {seq.start_with} {cache} {cycle}"
        ]

    def _gen_table(self, table: Table) -> list[str]:
        col_defs = []
        if table.tenant_column_name:
            col_defs.append(f"    {table.tenant_column_name} INT NOT NULL")
        for col in table.columns:
            col_def = f"    {col.name} {column_type_sql(col)}"
            if not col.nullable:
                col_def += " NOT NULL"
            col_defs.append(col_def)

        if table.primary_key:
            pk_cols = ", ".join(self._key_columns(table, table.primary_key.columns))
            col_defs.append(
                f"    CONSTRAINT {table.primary_key.name} PRIMARY KEY ({pk_cols})"
            )

        columns_sql = ",\n".join(col_defs)
        sql = f"CREATE TABLE {table.qualified_name} (\n{columns_sql}\n)"
        if table.tablespace is not None:
            sql += f" IN {table.tablespace.object_name}"

        result = [sql]
        result.extend(self._gen_index(table, index) for index in table.indexes)
        if table.access_control_variable is not None:
            result.extend(self._gen_access_control(table))
        return result

    def _gen_index(self, table: Table, index: IndexDef) -> str:
        keys = self._key_columns(table, index.columns)
        if index.unique:
            sql = (
                f"CREATE UNIQUE INDEX {table.schema_name}.{index.name} "
                f"ON {table.qualified_name} ({', '.join(keys)})"
            )
            if index.include_columns:
                sql += f" INCLUDE ({', '.join(index.include_columns)})"
            return sql
        # DB2 only allows INCLUDE on unique indexes
        keys.extend(c for c in index.include_columns if c not in keys)
        return (
            f"CREATE INDEX {table.schema_name}.{index.name} "
            f"ON {table.qualified_name} ({', '.join(keys)})"
        )

    def _gen_access_control(self, table: Table) -> list[str]:
        variable = table.access_control_variable
        permission = f"{table.schema_name}.{table.object_name}_TENANT"
        return [
            f"CREATE OR REPLACE PERMISSION {permission} ON {table.qualified_name} "
            f"FOR ROWS WHERE {table.qualified_name}.{table.tenant_column_name} = "
            f"{variable.qualified_name} ENFORCED FOR ALL ACCESS ENABLE",
            f"ALTER TABLE {table.qualified_name} ACTIVATE ROW ACCESS CONTROL",
        ]

    def _gen_row_type(self, row_type: RowType) -> list[str]:
        fields = ", ".join(f"{f.name} {column_type_sql(f)}" for f in row_type.fields)
        return [f"CREATE OR REPLACE TYPE {row_type.qualified_name} AS ROW ({fields})"]

    def _gen_row_array_type(self, array_type: RowArrayType) -> list[str]:
        return [
            f"CREATE OR REPLACE TYPE {array_type.qualified_name} AS "
            f"{array_type.row_type.qualified_name} ARRAY[{array_type.capacity}]"
        ]

    def _gen_procedure(self, procedure: Procedure) -> list[str]:
        body = procedure.body.strip()
        if not body:
            raise CodegenError(f"Procedure {procedure.qualified_name} has an empty body")
        return [body]

    def _gen_group(self, group: ObjectGroup) -> list[str]:
        result = []
        for member in group.members:
            result.extend(self.statements(member))
        return result

    @staticmethod
    def _key_columns(table: Table, columns: Iterable[str]) -> list[str]:
        """Tenant-scoped tables lead every key with the tenant column."""
        keys = list(columns)
        if table.tenant_column_name:
            keys.insert(0, table.tenant_column_name)
        return keys
