"""Build the FHIR data schema model.

The build is a fixed sequence of phases. Each phase is a function from a
BuildContext to a new BuildContext plus the objects it created, so the
objects every later phase can depend on are explicit in the context rather
than held in generator fields.

Phase order:

1. sequence            the shared id sequence
2. reference tables    code systems, parameter names, resource types
3. resource tables     one object group per resource type
4. parameter types     row/array type pairs for batched procedure parameters
5. barrier             a no-op depending on every table and type above
6. procedures          each depending on its table, the sequence and the barrier
7. resource procedures optional, one per resource type

Procedures depend on the barrier, not just their own table, so nothing in
phase 6 is applied while tables and types are still being created. DB2
deadlocks on the catalog otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Iterable, Optional

from fhirschema.config import Config
from fhirschema.control.constants import (
    ADD_ANY_RESOURCE,
    ADD_CODE_SYSTEM,
    ADD_PARAMETER_NAME,
    ADD_RESOURCE_TEMPLATE,
    ADD_RESOURCE_TYPE,
    ALL_TABLES_COMPLETE,
    CODE,
    CODE_SYSTEM_ID,
    CODE_SYSTEM_NAME,
    CODE_SYSTEMS,
    DATE_END,
    DATE_START,
    DATE_VALUE,
    DEFAULT_SESSION_VARIABLE,
    FHIR_SEQUENCE,
    FHIR_USER_GRANT_GROUP,
    IDX,
    INITIAL_VERSION,
    LATITUDE_VALUE,
    LONGITUDE_VALUE,
    MT_ID,
    NUMBER_VALUE,
    PARAMETER_NAME,
    PARAMETER_NAME_ID,
    PARAMETER_NAMES,
    QUANTITY_VALUE,
    QUANTITY_VALUE_HIGH,
    QUANTITY_VALUE_LOW,
    RESOURCE_TYPE,
    RESOURCE_TYPE_ID,
    RESOURCE_TYPES,
    SEQUENCE_CACHE,
    STR_VALUE,
    STR_VALUE_LCASE,
    STR_VALUE_SIZE,
    TOKEN_VALUE,
)
from fhirschema.control.resource_group import FhirResourceGroup, ResourceTableFactory
from fhirschema.control.resource_types import ALL_RESOURCE_TYPES, load_resource_types
from fhirschema.control.templates import (
    read_template,
    resource_replacers,
    template_provider,
)
from fhirschema.exceptions import CollaboratorError, FhirSchemaError, PreconditionError
from fhirschema.model.objects import (
    Barrier,
    DatabaseObject,
    ObjectGroup,
    Sequence,
    SessionVariable,
    Tablespace,
)
from fhirschema.model.physical import PhysicalDataModel
from fhirschema.model.privileges import GroupPrivilege, privileges_for
from fhirschema.model.rowtype import ARRAY_SIZE, RowArrayType, RowTypeBuilder
from fhirschema.model.table import Table
from fhirschema.types import Privilege

__all__ = [
    "BuildContext",
    "FhirSchemaGenerator",
    "Grants",
    "Phase",
    "PHASES",
    "build_admin_schema",
    "build_schema",
    "generate_model",
]

logger = logging.getLogger(__name__)

FactoryProvider = Callable[["BuildContext"], ResourceTableFactory]


@dataclass(frozen=True)
class Grants:
    """The grant lists attached to each category of object."""

    procedure: tuple[GroupPrivilege, ...]
    resource_table: tuple[GroupPrivilege, ...]
    variable: tuple[GroupPrivilege, ...]
    sequence: tuple[GroupPrivilege, ...]

    @classmethod
    def for_group(cls, group: str) -> "Grants":
        return cls(
            procedure=tuple(privileges_for(group, Privilege.EXECUTE)),
            resource_table=tuple(
                privileges_for(
                    group,
                    Privilege.INSERT,
                    Privilege.SELECT,
                    Privilege.UPDATE,
                    Privilege.DELETE,
                )
            ),
            variable=tuple(privileges_for(group, Privilege.READ)),
            sequence=tuple(privileges_for(group, Privilege.USAGE)),
        )


def default_resource_table_factory(ctx: "BuildContext") -> ResourceTableFactory:
    return FhirResourceGroup(
        ctx.model,
        ctx.schema_name,
        ctx.require("session_variable"),
        ctx.require("tablespace"),
        ctx.grants.resource_table,
    )


@dataclass(frozen=True)
class BuildContext:
    """Everything the phases read and produce.

    procedure_dependencies accumulates every table and type creating object
    (and the sequence) in the order created. The barrier depends on all of
    them.
    """

    model: PhysicalDataModel
    schema_name: str
    admin_schema_name: str
    tablespace: Optional[Tablespace]
    session_variable: Optional[SessionVariable]
    grants: Grants
    resource_types: tuple[str, ...]
    serialize_type_creation: bool = True
    per_resource_procedures: bool = False
    factory_provider: FactoryProvider = default_resource_table_factory
    sequence: Optional[Sequence] = None
    code_systems_table: Optional[Table] = None
    parameter_names_table: Optional[Table] = None
    resource_types_table: Optional[Table] = None
    resource_groups: tuple[ObjectGroup, ...] = ()
    parameter_types: tuple[DatabaseObject, ...] = ()
    procedure_dependencies: tuple[DatabaseObject, ...] = ()
    barrier: Optional[Barrier] = None

    def require(self, name: str):
        """Return a context attribute, failing the build if it is not set yet."""
        value = getattr(self, name)
        if value is None:
            raise PreconditionError(
                f"{name} must be defined before this phase of the schema build"
            )
        return value

    def extend(self, created: Iterable[DatabaseObject], **changes) -> "BuildContext":
        """New context with created appended to the procedure dependencies."""
        return replace(
            self,
            procedure_dependencies=self.procedure_dependencies + tuple(created),
            **changes,
        )


PhaseResult = tuple[BuildContext, list[DatabaseObject]]
Phase = Callable[[BuildContext], PhaseResult]


def add_fhir_sequence(ctx: BuildContext) -> PhaseResult:
    """CREATE SEQUENCE fhir_sequence AS BIGINT START WITH 1 CACHE 1000 NO CYCLE"""
    sequence = Sequence(ctx.schema_name, FHIR_SEQUENCE, INITIAL_VERSION, cache=SEQUENCE_CACHE)
    sequence.add_privileges(ctx.grants.sequence)
    ctx.model.add_object(sequence)
    return ctx.extend([sequence], sequence=sequence), [sequence]


def add_code_systems(ctx: BuildContext) -> PhaseResult:
    table = (
        Table.builder(ctx.schema_name, CODE_SYSTEMS)
        .set_tenant_column_name(MT_ID)
        .add_int_column(CODE_SYSTEM_ID, False)
        .add_varchar_column(CODE_SYSTEM_NAME, 255, False)
        .add_unique_index(IDX + "CODE_SYSTEM_CINM", CODE_SYSTEM_NAME)
        .add_primary_key(CODE_SYSTEMS + "_PK", CODE_SYSTEM_ID)
        .set_tablespace(ctx.require("tablespace"))
        .add_privileges(ctx.grants.resource_table)
        .enable_access_control(ctx.session_variable)
        .build(ctx.model)
    )
    return ctx.extend([table], code_systems_table=table), [table]


def add_parameter_names(ctx: BuildContext) -> PhaseResult:
    # The unique index also serves the primary key lookups
    table = (
        Table.builder(ctx.schema_name, PARAMETER_NAMES)
        .set_tenant_column_name(MT_ID)
        .add_int_column(PARAMETER_NAME_ID, False)
        .add_varchar_column(PARAMETER_NAME, 255, False)
        .add_unique_index(IDX + "PARAMETER_NAME_RTNM", [PARAMETER_NAME], [PARAMETER_NAME_ID])
        .add_primary_key(PARAMETER_NAMES + "_PK", PARAMETER_NAME_ID)
        .set_tablespace(ctx.require("tablespace"))
        .add_privileges(ctx.grants.resource_table)
        .enable_access_control(ctx.session_variable)
        .build(ctx.model)
    )
    return ctx.extend([table], parameter_names_table=table), [table]


def add_resource_types(ctx: BuildContext) -> PhaseResult:
    table = (
        Table.builder(ctx.schema_name, RESOURCE_TYPES)
        .set_tenant_column_name(MT_ID)
        .add_int_column(RESOURCE_TYPE_ID, False)
        .add_varchar_column(RESOURCE_TYPE, 64, False)
        .add_unique_index(IDX + "UNQ_RESOURCE_TYPES_RT", RESOURCE_TYPE)
        .add_primary_key(RESOURCE_TYPES + "_PK", RESOURCE_TYPE_ID)
        .set_tablespace(ctx.require("tablespace"))
        .add_privileges(ctx.grants.resource_table)
        .enable_access_control(ctx.session_variable)
        .build(ctx.model)
    )
    return ctx.extend([table], resource_types_table=table), [table]


def add_reference_tables(ctx: BuildContext) -> PhaseResult:
    """The three lookup tables. They are independent of each other."""
    created: list[DatabaseObject] = []
    for phase in (add_code_systems, add_parameter_names, add_resource_types):
        ctx, objs = phase(ctx)
        created.extend(objs)
    return ctx, created


def add_resource_tables(ctx: BuildContext) -> PhaseResult:
    """One group of tables per resource type, built by the table factory."""
    session_variable = ctx.require("session_variable")
    tablespace = ctx.require("tablespace")
    reference_tables = [
        ctx.require("code_systems_table"),
        ctx.require("parameter_names_table"),
        ctx.require("resource_types_table"),
    ]

    factory = ctx.factory_provider(ctx)
    groups: list[ObjectGroup] = []
    for resource_type in ctx.resource_types:
        try:
            group = factory.add_resource_type(resource_type)
        except FhirSchemaError:
            raise
        except Exception as exc:
            raise CollaboratorError(
                f"Resource table factory failed for {resource_type}: {exc}"
            ) from exc
        if not isinstance(group, ObjectGroup):
            raise CollaboratorError(
                f"Resource table factory returned {type(group).__name__} "
                f"for {resource_type}, expected ObjectGroup"
            )

        # Dependencies the factory doesn't know about
        group.add_dependencies([tablespace, session_variable, *reference_tables])
        ctx.model.add_object(group)
        groups.append(group)

    return ctx.extend(groups, resource_groups=ctx.resource_groups + tuple(groups)), list(groups)


def _add_value_types(
    ctx: BuildContext,
    type_name: str,
    configure: Callable[[RowTypeBuilder], RowTypeBuilder],
    previous: Optional[DatabaseObject],
) -> list[DatabaseObject]:
    """Add a row type and its array type. The row type waits for previous."""
    builder = RowTypeBuilder().set_schema_name(ctx.schema_name).set_type_name(type_name)
    row_type = configure(builder.add_bigint_column(PARAMETER_NAME_ID, False)).build()
    if previous is not None:
        row_type.add_dependencies([previous])
    ctx.model.add_object(row_type)

    array_type = RowArrayType(
        ctx.schema_name, type_name + "_arr", INITIAL_VERSION, row_type, ARRAY_SIZE
    )
    ctx.model.add_object(array_type)
    return [row_type, array_type]


# Row layouts of the parameter types, in creation order
PARAMETER_TYPES: tuple[tuple[str, Callable[[RowTypeBuilder], RowTypeBuilder]], ...] = (
    (
        "t_str_values",
        lambda b: b.add_varchar_column(STR_VALUE, STR_VALUE_SIZE, False).add_varchar_column(
            STR_VALUE_LCASE, STR_VALUE_SIZE, False
        ),
    ),
    (
        "t_token_values",
        lambda b: b.add_int_column(CODE_SYSTEM_ID, False).add_varchar_column(
            TOKEN_VALUE, 255, False
        ),
    ),
    (
        "t_date_values",
        lambda b: b.add_timestamp_column(DATE_VALUE, False)
        .add_timestamp_column(DATE_START, False)
        .add_timestamp_column(DATE_END, False),
    ),
    (
        "t_latlng_values",
        lambda b: b.add_double_column(LATITUDE_VALUE, False).add_double_column(
            LONGITUDE_VALUE, False
        ),
    ),
    (
        "t_quantity_values",
        lambda b: b.add_varchar_column(CODE, 255, False)
        .add_double_column(QUANTITY_VALUE, False)
        .add_double_column(QUANTITY_VALUE_LOW, False)
        .add_double_column(QUANTITY_VALUE_HIGH, False)
        .add_int_column(CODE_SYSTEM_ID, False),
    ),
    ("t_number_values", lambda b: b.add_double_column(NUMBER_VALUE, False)),
)


def add_procedure_parameter_types(ctx: BuildContext) -> PhaseResult:
    """Row and array types used to pass search values to the procedures.

    DB2 fails with SQLCODE=-911 (lock timeout) when these types are created
    concurrently, so by default each pair depends on the previous one and
    the six pairs form a single chain.
    """
    created: list[DatabaseObject] = []
    previous: Optional[DatabaseObject] = None
    for type_name, configure in PARAMETER_TYPES:
        pair = _add_value_types(ctx, type_name, configure, previous)
        created.extend(pair)
        if ctx.serialize_type_creation:
            previous = pair[-1]
    return ctx.extend(created, parameter_types=tuple(created)), created


def add_barrier(ctx: BuildContext) -> PhaseResult:
    """Collapse every table and type created so far into one dependency."""
    barrier = Barrier(ctx.schema_name, ALL_TABLES_COMPLETE, ctx.procedure_dependencies)
    ctx.model.add_object(barrier)
    return replace(ctx, barrier=barrier), [barrier]


def add_procedures(ctx: BuildContext) -> PhaseResult:
    sequence = ctx.require("sequence")
    barrier = ctx.require("barrier")
    targets = (
        (ADD_CODE_SYSTEM, ctx.require("code_systems_table")),
        (ADD_PARAMETER_NAME, ctx.require("parameter_names_table")),
        (ADD_RESOURCE_TYPE, ctx.require("resource_types_table")),
        (ADD_ANY_RESOURCE, ctx.require("resource_types_table")),
    )

    created: list[DatabaseObject] = []
    for procedure_name, table in targets:
        procedure = ctx.model.add_procedure(
            ctx.schema_name,
            procedure_name,
            INITIAL_VERSION,
            template_provider(
                ctx.admin_schema_name,
                ctx.schema_name,
                procedure_name.lower() + ".sql",
                session_variable=ctx.require("session_variable").object_name,
            ),
            [sequence, table, barrier],
            ctx.grants.procedure,
        )
        created.append(procedure)
    return ctx, created


def add_resource_procedures(ctx: BuildContext) -> PhaseResult:
    """Optional <type>_ADD_RESOURCE procedure per resource type."""
    if not ctx.per_resource_procedures:
        return ctx, []

    sequence = ctx.require("sequence")
    barrier = ctx.require("barrier")
    created: list[DatabaseObject] = []
    for resource_type in ctx.resource_types:
        procedure = ctx.model.add_procedure(
            ctx.schema_name,
            resource_type.upper() + "_ADD_RESOURCE",
            INITIAL_VERSION,
            template_provider(
                ctx.admin_schema_name,
                ctx.schema_name,
                ADD_RESOURCE_TEMPLATE,
                resource_replacers(resource_type),
                session_variable=ctx.require("session_variable").object_name,
            ),
            [sequence, barrier],
            ctx.grants.procedure,
        )
        created.append(procedure)
    return ctx, created


PHASES: tuple[tuple[str, Phase], ...] = (
    ("sequence", add_fhir_sequence),
    ("reference tables", add_reference_tables),
    ("resource tables", add_resource_tables),
    ("procedure parameter types", add_procedure_parameter_types),
    ("barrier", add_barrier),
    ("procedures", add_procedures),
    ("resource procedures", add_resource_procedures),
)


def check_preconditions(ctx: BuildContext) -> None:
    """Fail before anything is registered if the admin objects the data
    schema binds to are missing from the model."""
    for name in ("tablespace", "session_variable"):
        obj = ctx.require(name)
        if not ctx.model.contains(obj):
            raise PreconditionError(
                f"{obj.qualified_name} must be registered in the model before "
                "the schema is built"
            )


def build_schema(ctx: BuildContext) -> BuildContext:
    """Run every phase in order and return the final context."""
    check_preconditions(ctx)
    for phase_name, phase in PHASES:
        ctx, created = phase(ctx)
        logger.info("Phase %s: %d object(s)", phase_name, len(created))
    return ctx


def build_admin_schema(
    model: PhysicalDataModel, config: Config
) -> tuple[Tablespace, SessionVariable]:
    """Register the tablespace and tenant session variable the data schema needs."""
    tablespace = Tablespace(config.tablespace, INITIAL_VERSION)
    model.add_object(tablespace)

    session_variable = SessionVariable(
        config.admin_schema_name, config.session_variable, INITIAL_VERSION
    )
    session_variable.add_privileges(Grants.for_group(config.grant_group).variable)
    model.add_object(session_variable)
    return tablespace, session_variable


class FhirSchemaGenerator:
    """Generates the FHIR data schema artifacts into a PhysicalDataModel."""

    def __init__(
        self,
        admin_schema_name: str,
        schema_name: str,
        tablespace: Optional[Tablespace],
        session_variable: Optional[SessionVariable],
        resource_types: Optional[Iterable[str]] = None,
        grant_group: str = FHIR_USER_GRANT_GROUP,
        serialize_type_creation: bool = True,
        per_resource_procedures: bool = False,
        factory_provider: Optional[FactoryProvider] = None,
    ):
        self.admin_schema_name = admin_schema_name
        self.schema_name = schema_name
        self.tablespace = tablespace
        self.session_variable = session_variable
        self.resource_types = tuple(
            resource_types if resource_types is not None else ALL_RESOURCE_TYPES
        )
        self.grants = Grants.for_group(grant_group)
        self.serialize_type_creation = serialize_type_creation
        self.per_resource_procedures = per_resource_procedures
        self.factory_provider = factory_provider or default_resource_table_factory

    def context(self, model: PhysicalDataModel) -> BuildContext:
        return BuildContext(
            model=model,
            schema_name=self.schema_name,
            admin_schema_name=self.admin_schema_name,
            tablespace=self.tablespace,
            session_variable=self.session_variable,
            grants=self.grants,
            resource_types=self.resource_types,
            serialize_type_creation=self.serialize_type_creation,
            per_resource_procedures=self.per_resource_procedures,
            factory_provider=self.factory_provider,
        )

    def build_schema(self, model: PhysicalDataModel) -> BuildContext:
        logger.info(
            "Building schema %s for %d resource types",
            self.schema_name,
            len(self.resource_types),
        )
        return build_schema(self.context(model))

    def apply_resource_types(self, consumer: Callable[[str], None]) -> None:
        for resource_type in self.resource_types:
            consumer(resource_type)

    def read_resource_template(self, resource_type: str) -> str:
        """The per-type add_resource procedure body for resource_type."""
        return read_template(
            self.admin_schema_name,
            self.schema_name,
            ADD_RESOURCE_TEMPLATE,
            resource_replacers(resource_type),
            session_variable=(
                self.session_variable.object_name
                if self.session_variable is not None
                else DEFAULT_SESSION_VARIABLE
            ),
        )


def generate_model(
    config: Config,
    resource_types: Optional[Iterable[str]] = None,
    factory_provider: Optional[FactoryProvider] = None,
) -> PhysicalDataModel:
    """Build, check and seal a complete model.

    The model is only returned once fully built; any failure propagates and
    the partial model is discarded.
    """
    config.validate()
    if resource_types is None and config.resource_types_file:
        resource_types = load_resource_types(Path(config.resource_types_file))

    model = PhysicalDataModel()
    tablespace, session_variable = build_admin_schema(model, config)
    generator = FhirSchemaGenerator(
        config.admin_schema_name,
        config.schema_name,
        tablespace,
        session_variable,
        resource_types=resource_types,
        grant_group=config.grant_group,
        serialize_type_creation=config.serialize_type_creation,
        per_resource_procedures=config.per_resource_procedures,
        factory_provider=factory_provider,
    )
    generator.build_schema(model)
    model.seal()
    return model
