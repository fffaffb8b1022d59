"""Per resource type table groups."""

import logging
from typing import Callable, Iterable, Protocol, runtime_checkable

from fhirschema.control.constants import (
    CODE,
    CODE_SYSTEM_ID,
    CURRENT_RESOURCE_ID,
    DATA,
    DATE_END,
    DATE_START,
    DATE_VALUE,
    DATE_VALUES,
    IDX,
    INITIAL_VERSION,
    IS_DELETED,
    LAST_UPDATED,
    LATITUDE_VALUE,
    LATLNG_VALUES,
    LOGICAL_ID,
    LOGICAL_RESOURCE_ID,
    LOGICAL_RESOURCES,
    LONGITUDE_VALUE,
    MT_ID,
    NUMBER_VALUE,
    NUMBER_VALUES,
    PARAMETER_NAME_ID,
    QUANTITY_VALUE,
    QUANTITY_VALUE_HIGH,
    QUANTITY_VALUE_LOW,
    QUANTITY_VALUES,
    RESOURCE_ID,
    RESOURCES,
    STR_VALUE,
    STR_VALUE_LCASE,
    STR_VALUE_SIZE,
    STR_VALUES,
    TOKEN_VALUE,
    TOKEN_VALUES,
    VERSION_ID,
)
from fhirschema.model.objects import ObjectGroup, SessionVariable, Tablespace
from fhirschema.model.physical import PhysicalDataModel
from fhirschema.model.privileges import GroupPrivilege
from fhirschema.model.table import Table, TableBuilder
from fhirschema.types import SchemaName

__all__ = ["ResourceTableFactory", "FhirResourceGroup"]

logger = logging.getLogger(__name__)

# Maximum length of the resource payload BLOB
PAYLOAD_MAX_SIZE = 2147483647


@runtime_checkable
class ResourceTableFactory(Protocol):
    """Produces the versioned group of physical tables for one resource type.

    The group it returns must not be registered yet: the caller adds its own
    dependencies to it first.
    """

    def add_resource_type(self, resource_type: str) -> ObjectGroup:
        ...


class FhirResourceGroup:
    """Default factory: one logical resource table, one version table and
    six search parameter value tables per resource type.

    Every table is tenant scoped and bound to the tenant session variable.
    """

    def __init__(
        self,
        model: PhysicalDataModel,
        schema_name: SchemaName,
        session_variable: SessionVariable,
        tablespace: Tablespace,
        privileges: Iterable[GroupPrivilege],
        version: int = INITIAL_VERSION,
    ):
        self.model = model
        self.schema_name = schema_name
        self.session_variable = session_variable
        self.tablespace = tablespace
        self.privileges = list(privileges)
        self.version = version

    def add_resource_type(self, resource_type: str) -> ObjectGroup:
        prefix = resource_type.upper()
        logical_resources = self._add_logical_resources(prefix)
        resources = self._add_resources(prefix, logical_resources)

        members = [logical_resources, resources]
        members.append(self._add_str_values(prefix, resources))
        members.append(self._add_token_values(prefix, resources))
        members.append(self._add_date_values(prefix, resources))
        members.append(self._add_number_values(prefix, resources))
        members.append(self._add_quantity_values(prefix, resources))
        members.append(self._add_latlng_values(prefix, resources))

        logger.debug("Built %d tables for %s", len(members), resource_type)
        return ObjectGroup(self.schema_name, resource_type, self.version, members)

    def _builder(self, table_name: str) -> TableBuilder:
        return (
            Table.builder(self.schema_name, table_name)
            .set_version(self.version)
            .set_tenant_column_name(MT_ID)
            .set_tablespace(self.tablespace)
            .add_privileges(self.privileges)
            .enable_access_control(self.session_variable)
        )

    def _add_logical_resources(self, prefix: str) -> Table:
        table_name = f"{prefix}_{LOGICAL_RESOURCES}"
        return (
            self._builder(table_name)
            .add_bigint_column(LOGICAL_RESOURCE_ID, False)
            .add_varchar_column(LOGICAL_ID, 255, False)
            .add_bigint_column(CURRENT_RESOURCE_ID, True)
            .add_primary_key(table_name + "_PK", LOGICAL_RESOURCE_ID)
            .add_unique_index(
                IDX + table_name + "_LID", [LOGICAL_ID], [LOGICAL_RESOURCE_ID]
            )
            .build(self.model, register=False)
        )

    def _add_resources(self, prefix: str, logical_resources: Table) -> Table:
        table_name = f"{prefix}_{RESOURCES}"
        return (
            self._builder(table_name)
            .add_bigint_column(RESOURCE_ID, False)
            .add_bigint_column(LOGICAL_RESOURCE_ID, False)
            .add_int_column(VERSION_ID, False)
            .add_timestamp_column(LAST_UPDATED, False)
            .add_char_column(IS_DELETED, 1, False)
            .add_blob_column(DATA, PAYLOAD_MAX_SIZE, True)
            .add_primary_key(table_name + "_PK", RESOURCE_ID)
            .add_unique_index(
                IDX + table_name + "_LUPD", [LOGICAL_RESOURCE_ID, VERSION_ID]
            )
            .add_index(IDX + table_name + "_LUPDT", [LAST_UPDATED], [RESOURCE_ID])
            .add_dependencies([logical_resources])
            .build(self.model, register=False)
        )

    def _value_table(
        self,
        prefix: str,
        suffix: str,
        resources: Table,
        add_columns: Callable[[TableBuilder], TableBuilder],
        value_column: str,
    ) -> Table:
        table_name = f"{prefix}_{suffix}"
        builder = self._builder(table_name).add_int_column(PARAMETER_NAME_ID, False)
        builder = add_columns(builder)
        return (
            builder.add_bigint_column(RESOURCE_ID, False)
            .add_index(
                IDX + table_name + "_PVR", [PARAMETER_NAME_ID, value_column, RESOURCE_ID]
            )
            .add_index(IDX + table_name + "_RPS", [RESOURCE_ID, PARAMETER_NAME_ID])
            .add_dependencies([resources])
            .build(self.model, register=False)
        )

    def _add_str_values(self, prefix: str, resources: Table) -> Table:
        return self._value_table(
            prefix,
            STR_VALUES,
            resources,
            lambda b: b.add_varchar_column(STR_VALUE, STR_VALUE_SIZE, True).add_varchar_column(
                STR_VALUE_LCASE, STR_VALUE_SIZE, True
            ),
            STR_VALUE,
        )

    def _add_token_values(self, prefix: str, resources: Table) -> Table:
        return self._value_table(
            prefix,
            TOKEN_VALUES,
            resources,
            lambda b: b.add_int_column(CODE_SYSTEM_ID, False).add_varchar_column(
                TOKEN_VALUE, 255, True
            ),
            TOKEN_VALUE,
        )

    def _add_date_values(self, prefix: str, resources: Table) -> Table:
        return self._value_table(
            prefix,
            DATE_VALUES,
            resources,
            lambda b: b.add_timestamp_column(DATE_VALUE, True)
            .add_timestamp_column(DATE_START, True)
            .add_timestamp_column(DATE_END, True),
            DATE_START,
        )

    def _add_number_values(self, prefix: str, resources: Table) -> Table:
        return self._value_table(
            prefix,
            NUMBER_VALUES,
            resources,
            lambda b: b.add_double_column(NUMBER_VALUE, True),
            NUMBER_VALUE,
        )

    def _add_quantity_values(self, prefix: str, resources: Table) -> Table:
        return self._value_table(
            prefix,
            QUANTITY_VALUES,
            resources,
            lambda b: b.add_varchar_column(CODE, 255, False)
            .add_double_column(QUANTITY_VALUE, True)
            .add_double_column(QUANTITY_VALUE_LOW, True)
            .add_double_column(QUANTITY_VALUE_HIGH, True)
            .add_int_column(CODE_SYSTEM_ID, True),
            QUANTITY_VALUE,
        )

    def _add_latlng_values(self, prefix: str, resources: Table) -> Table:
        return self._value_table(
            prefix,
            LATLNG_VALUES,
            resources,
            lambda b: b.add_double_column(LATITUDE_VALUE, True).add_double_column(
                LONGITUDE_VALUE, True
            ),
            LATITUDE_VALUE,
        )
