"""Tests for DDL and GRANT statement rendering."""

import pytest

from fhirschema.deploy.codegen import DdlGenerator, column_type_sql
from fhirschema.exceptions import CodegenError
from fhirschema.model.objects import (
    Barrier,
    ObjectGroup,
    Procedure,
    Sequence,
    SessionVariable,
    Tablespace,
)
from fhirschema.model.privileges import privileges_for
from fhirschema.model.rowtype import RowArrayType, RowTypeBuilder
from fhirschema.model.table import ColumnDef, Table
from fhirschema.types import ColumnType, Privilege
from tests.helpers import make_model_with_admin


@pytest.fixture
def generator() -> DdlGenerator:
    return DdlGenerator()


@pytest.fixture
def code_systems():
    """Tenant scoped, access controlled table with a unique index."""
    model, tablespace, variable = make_model_with_admin()
    return (
        Table.builder("FHIRDATA", "CODE_SYSTEMS")
        .set_tenant_column_name("MT_ID")
        .add_int_column("CODE_SYSTEM_ID", False)
        .add_varchar_column("CODE_SYSTEM_NAME", 255, False)
        .add_unique_index("IDX_CODE_SYSTEM_CINM", "CODE_SYSTEM_NAME")
        .add_primary_key("CODE_SYSTEMS_PK", "CODE_SYSTEM_ID")
        .set_tablespace(tablespace)
        .add_privileges(privileges_for("FHIRSERVER", Privilege.SELECT, Privilege.INSERT))
        .enable_access_control(variable)
        .build(model)
    )


class TestColumnTypes:
    @pytest.mark.parametrize(
        "column,expected",
        [
            (ColumnDef("A", ColumnType.INT), "INT"),
            (ColumnDef("A", ColumnType.BIGINT), "BIGINT"),
            (ColumnDef("A", ColumnType.DOUBLE), "DOUBLE"),
            (ColumnDef("A", ColumnType.TIMESTAMP), "TIMESTAMP"),
            (ColumnDef("A", ColumnType.VARCHAR, size=255), "VARCHAR(255 OCTETS)"),
            (ColumnDef("A", ColumnType.CHAR, size=1), "CHAR(1)"),
            (ColumnDef("A", ColumnType.BLOB, size=1024), "BLOB(1024)"),
        ],
    )
    def test_column_type_sql(self, column, expected):
        assert column_type_sql(column) == expected


class TestCodegenTable:
    def test_create_table(self, generator: DdlGenerator, code_systems: Table):
        create = generator.statements(code_systems)[0]
        assert create.startswith("CREATE TABLE FHIRDATA.CODE_SYSTEMS (")
        lines = create.splitlines()
        assert lines[1] == "    MT_ID INT NOT NULL,"
        assert "    CODE_SYSTEM_ID INT NOT NULL," in lines
        assert "    CODE_SYSTEM_NAME VARCHAR(255 OCTETS) NOT NULL," in lines
        assert "CONSTRAINT CODE_SYSTEMS_PK PRIMARY KEY (MT_ID, CODE_SYSTEM_ID)" in create
        assert create.endswith(") IN FHIR_TS")

    def test_unique_index_leads_with_tenant(self, generator, code_systems):
        statements = generator.statements(code_systems)
        assert (
            "CREATE UNIQUE INDEX FHIRDATA.IDX_CODE_SYSTEM_CINM "
            "ON FHIRDATA.CODE_SYSTEMS (MT_ID, CODE_SYSTEM_NAME)"
        ) in statements

    def test_row_permission(self, generator, code_systems):
        statements = generator.statements(code_systems)
        permission = next(s for s in statements if "PERMISSION" in s)
        assert "FHIRDATA.CODE_SYSTEMS_TENANT" in permission
        assert "FHIRDATA.CODE_SYSTEMS.MT_ID = FHIR_ADMIN.SV_TENANT_ID" in permission
        assert (
            "ALTER TABLE FHIRDATA.CODE_SYSTEMS ACTIVATE ROW ACCESS CONTROL" in statements
        )

    def test_grants_follow_create(self, generator, code_systems):
        statements = generator.statements(code_systems)
        assert statements[-2:] == [
            "GRANT SELECT ON TABLE FHIRDATA.CODE_SYSTEMS TO FHIRSERVER",
            "GRANT INSERT ON TABLE FHIRDATA.CODE_SYSTEMS TO FHIRSERVER",
        ]

    def test_include_columns_on_plain_index(self, generator):
        model, _, _ = make_model_with_admin()
        table = (
            Table.builder("S", "T")
            .add_int_column("A", False)
            .add_int_column("B", False)
            .add_index("IDX_T", "A", ["B"])
            .add_unique_index("IDX_U", "B", ["A"])
            .build(model)
        )
        statements = generator.statements(table)
        assert "CREATE INDEX S.IDX_T ON S.T (A, B)" in statements
        assert "CREATE UNIQUE INDEX S.IDX_U ON S.T (B) INCLUDE (A)" in statements


class TestCodegenOtherKinds:
    def test_sequence(self, generator):
        seq = Sequence("FHIRDATA", "FHIR_SEQUENCE", cache=1000)
        seq.add_privileges(privileges_for("FHIRSERVER", Privilege.USAGE))
        assert generator.statements(seq) == [
            "CREATE SEQUENCE FHIRDATA.FHIR_SEQUENCE AS BIGINT START WITH 1 CACHE 1000 NO CYCLE",
            "GRANT USAGE ON SEQUENCE FHIRDATA.FHIR_SEQUENCE TO FHIRSERVER",
        ]

    def test_variable(self, generator):
        var = SessionVariable("FHIR_ADMIN", "SV_TENANT_ID")
        var.add_privileges(privileges_for("FHIRSERVER", Privilege.READ))
        assert generator.statements(var) == [
            "CREATE OR REPLACE VARIABLE FHIR_ADMIN.SV_TENANT_ID INT DEFAULT NULL",
            "GRANT READ ON VARIABLE FHIR_ADMIN.SV_TENANT_ID TO FHIRSERVER",
        ]

    def test_tablespace(self, generator):
        assert generator.statements(Tablespace("FHIR_TS")) == [
            "CREATE TABLESPACE FHIR_TS MANAGED BY AUTOMATIC STORAGE EXTENTSIZE 128K"
        ]

    def test_row_and_array_types(self, generator):
        row_type = (
            RowTypeBuilder()
            .set_schema_name("S")
            .set_type_name("t_number_values")
            .add_bigint_column("PARAMETER_NAME_ID", False)
            .add_double_column("NUMBER_VALUE", False)
            .build()
        )
        array_type = RowArrayType("S", "t_number_values_arr", 1, row_type)
        assert generator.statements(row_type) == [
            "CREATE OR REPLACE TYPE S.t_number_values AS ROW "
            "(PARAMETER_NAME_ID BIGINT, NUMBER_VALUE DOUBLE)"
        ]
        assert generator.statements(array_type) == [
            "CREATE OR REPLACE TYPE S.t_number_values_arr AS S.t_number_values ARRAY[256]"
        ]

    def test_procedure(self, generator):
        proc = Procedure("S", "P", 1, lambda: "  CREATE PROCEDURE S.P() BEGIN END\n")
        proc.add_privileges(privileges_for("FHIRSERVER", Privilege.EXECUTE))
        assert generator.statements(proc) == [
            "CREATE PROCEDURE S.P() BEGIN END",
            "GRANT EXECUTE ON PROCEDURE S.P TO FHIRSERVER",
        ]

    def test_empty_procedure_body(self, generator):
        with pytest.raises(CodegenError, match="empty body"):
            generator.statements(Procedure("S", "P", 1, lambda: "   "))

    def test_barrier_renders_nothing(self, generator):
        assert generator.statements(Barrier("S", "ALL_TABLES_COMPLETE", [])) == []

    def test_group_renders_members_in_order(self, generator):
        a = Sequence("S", "A")
        b = Sequence("S", "B")
        group = ObjectGroup("S", "G", 1, [a, b])
        statements = generator.statements(group)
        assert [s.split()[2] for s in statements] == ["S.A", "S.B"]


class TestCodegenScript:
    def test_generate_header_and_waves(self, generator):
        seq = Sequence("S", "SEQ")
        script = generator.generate([[seq]], "FHIR schema S")
        assert script.startswith("-- Deployment: Auto-generated")
        assert "-- Description: FHIR schema S" in script
        assert "-- Generated:" in script
        assert "-- Wave 0" in script
        assert "CACHE 1000 NO CYCLE@" in script
