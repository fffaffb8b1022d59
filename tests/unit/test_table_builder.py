"""Tests for TableBuilder validation and registration."""

import pytest

from fhirschema.exceptions import (
    DanglingColumnError,
    DefinitionError,
    DuplicateObjectError,
    PreconditionError,
)
from fhirschema.model.objects import SessionVariable
from fhirschema.model.physical import PhysicalDataModel
from fhirschema.model.privileges import privileges_for
from fhirschema.model.table import Table
from fhirschema.types import ColumnType, Privilege
from tests.helpers import make_model_with_admin, make_table


class TestTableBuilderColumns:
    def test_builds_columns_in_order(self):
        model = PhysicalDataModel()
        table = (
            Table.builder("S", "CODE_SYSTEMS")
            .add_int_column("CODE_SYSTEM_ID", False)
            .add_varchar_column("CODE_SYSTEM_NAME", 255, False)
            .add_char_column("IS_DELETED", 1, True)
            .add_blob_column("DATA", 1024, True)
            .add_double_column("NUMBER_VALUE", True)
            .add_timestamp_column("LAST_UPDATED", False)
            .add_bigint_column("RESOURCE_ID", False)
            .build(model)
        )

        assert table.column_names() == [
            "CODE_SYSTEM_ID",
            "CODE_SYSTEM_NAME",
            "IS_DELETED",
            "DATA",
            "NUMBER_VALUE",
            "LAST_UPDATED",
            "RESOURCE_ID",
        ]
        name = table.get_column("CODE_SYSTEM_NAME")
        assert name.column_type == ColumnType.VARCHAR
        assert name.size == 255
        assert name.nullable is False
        assert table.get_column("MISSING") is None

    def test_duplicate_column(self):
        builder = Table.builder("S", "T").add_int_column("ID", False)
        with pytest.raises(DefinitionError, match="Duplicate column"):
            builder.add_int_column("ID", True)

    def test_varchar_needs_positive_size(self):
        with pytest.raises(DefinitionError, match="positive size"):
            Table.builder("S", "T").add_varchar_column("NAME", 0, False)

    def test_table_without_columns(self):
        with pytest.raises(DefinitionError, match="no columns"):
            Table.builder("S", "T").build(PhysicalDataModel())

    def test_version(self):
        table = (
            Table.builder("S", "T").set_version(3).add_int_column("ID", False)
        ).build(PhysicalDataModel())
        assert table.version == 3


class TestTableBuilderKeys:
    def test_primary_key_and_indexes(self):
        table = (
            Table.builder("S", "PARAMETER_NAMES")
            .add_int_column("PARAMETER_NAME_ID", False)
            .add_varchar_column("PARAMETER_NAME", 255, False)
            .add_unique_index("IDX_PN", ["PARAMETER_NAME"], ["PARAMETER_NAME_ID"])
            .add_index("IDX_PN2", "PARAMETER_NAME_ID")
            .add_primary_key("PARAMETER_NAMES_PK", "PARAMETER_NAME_ID")
            .build(PhysicalDataModel())
        )

        assert table.primary_key.columns == ("PARAMETER_NAME_ID",)
        unique, plain = table.indexes
        assert unique.unique is True
        assert unique.include_columns == ("PARAMETER_NAME_ID",)
        assert plain.unique is False
        assert plain.columns == ("PARAMETER_NAME_ID",)

    def test_index_on_undeclared_column(self):
        builder = (
            Table.builder("S", "T")
            .add_int_column("ID", False)
            .add_index("IDX_T", ["ID", "NAME"])
        )
        with pytest.raises(DanglingColumnError, match="NAME"):
            builder.build(PhysicalDataModel())

    def test_include_column_undeclared(self):
        builder = (
            Table.builder("S", "T")
            .add_int_column("ID", False)
            .add_unique_index("IDX_T", "ID", ["EXTRA"])
        )
        with pytest.raises(DanglingColumnError, match="EXTRA"):
            builder.build(PhysicalDataModel())

    def test_primary_key_on_undeclared_column(self):
        builder = Table.builder("S", "T").add_int_column("ID", False).add_primary_key(
            "T_PK", "OTHER"
        )
        with pytest.raises(DanglingColumnError):
            builder.build(PhysicalDataModel())

    def test_second_primary_key(self):
        builder = Table.builder("S", "T").add_int_column("ID", False).add_primary_key(
            "T_PK", "ID"
        )
        with pytest.raises(DefinitionError, match="already has primary key"):
            builder.add_primary_key("T_PK2", "ID")


class TestTableBuilderTenancy:
    def test_access_control_binds_variable_and_tablespace(self):
        model, tablespace, variable = make_model_with_admin()
        table = (
            Table.builder("S", "T")
            .set_tenant_column_name("MT_ID")
            .add_int_column("ID", False)
            .set_tablespace(tablespace)
            .enable_access_control(variable)
            .build(model)
        )

        assert table.is_tenant_scoped
        assert table.has_access_control
        assert variable in table.dependencies
        assert tablespace in table.dependencies

    def test_access_control_without_variable(self):
        with pytest.raises(PreconditionError):
            Table.builder("S", "T").enable_access_control(None)

    def test_access_control_with_unregistered_variable(self):
        builder = (
            Table.builder("S", "T")
            .set_tenant_column_name("MT_ID")
            .add_int_column("ID", False)
            .enable_access_control(SessionVariable("ADM", "SV_TENANT_ID"))
        )
        with pytest.raises(PreconditionError, match="registered"):
            builder.build(PhysicalDataModel())

    def test_access_control_needs_tenant_column(self):
        model, _, variable = make_model_with_admin()
        builder = (
            Table.builder("S", "T")
            .add_int_column("ID", False)
            .enable_access_control(variable)
        )
        with pytest.raises(DefinitionError, match="tenant column"):
            builder.build(model)

    def test_tenant_column_must_not_be_declared(self):
        builder = (
            Table.builder("S", "T")
            .set_tenant_column_name("MT_ID")
            .add_int_column("MT_ID", False)
        )
        with pytest.raises(DefinitionError, match="implicit"):
            builder.build(PhysicalDataModel())


class TestTableBuilderRegistration:
    def test_build_registers_table(self):
        model = PhysicalDataModel()
        table = make_table(model, "T")
        assert model.contains(table)
        assert model.tables == (table,)

    def test_build_without_registering(self):
        model = PhysicalDataModel()
        table = make_table(model, "T", register=False)
        assert not model.contains(table)

    def test_duplicate_table(self):
        model = PhysicalDataModel()
        make_table(model, "T")
        with pytest.raises(DuplicateObjectError) as exc_info:
            make_table(model, "T")
        assert exc_info.value.key.name == "T"

    def test_privileges_attached(self):
        table = (
            Table.builder("S", "T")
            .add_int_column("ID", False)
            .add_privileges(privileges_for("FHIRSERVER", Privilege.SELECT, Privilege.INSERT))
            .build(PhysicalDataModel())
        )
        assert [p.privilege for p in table.privileges] == [
            Privilege.SELECT,
            Privilege.INSERT,
        ]

    def test_extra_dependencies(self):
        model = PhysicalDataModel()
        first = make_table(model, "FIRST")
        second = make_table(model, "SECOND", deps=[first])
        assert second.dependencies == (first,)
