"""Shared test helpers for fhirschema tests."""

from fhirschema.config import Config
from fhirschema.model.objects import SessionVariable, Tablespace
from fhirschema.model.physical import PhysicalDataModel
from fhirschema.model.table import Table


def make_test_config(
    schema: str = "FHIRDATA",
    admin_schema: str = "FHIR_ADMIN",
    **overrides,
) -> Config:
    """Create a Config for tests with sensible defaults."""
    return Config(schema_name=schema, admin_schema_name=admin_schema, **overrides)


def make_model_with_admin(
    admin_schema: str = "FHIR_ADMIN",
) -> tuple[PhysicalDataModel, Tablespace, SessionVariable]:
    """A fresh model holding a registered tablespace and session variable."""
    model = PhysicalDataModel()
    tablespace = Tablespace("FHIR_TS")
    session_variable = SessionVariable(admin_schema, "SV_TENANT_ID")
    model.add_object(tablespace)
    model.add_object(session_variable)
    return model, tablespace, session_variable


def make_table(
    model: PhysicalDataModel,
    name: str,
    schema: str = "S",
    deps=(),
    register: bool = True,
) -> Table:
    """A one-column table, registered in model unless register is False."""
    return (
        Table.builder(schema, name)
        .add_int_column("ID", False)
        .add_dependencies(deps)
        .build(model, register=register)
    )


class FailingTarget:
    """Target that raises on any statement containing fail_on."""

    def __init__(self, fail_on: str):
        self.fail_on = fail_on
        self.statements: list[str] = []

    def execute(self, statement: str) -> None:
        if self.fail_on in statement:
            raise RuntimeError(f"SQLCODE=-204 executing {statement[:30]}")
        self.statements.append(statement)
