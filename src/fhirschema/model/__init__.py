"""Schema object model and dependency scheduler."""

from fhirschema.model.objects import (
    INITIAL_VERSION,
    Barrier,
    DatabaseObject,
    NopObject,
    ObjectGroup,
    Procedure,
    Sequence,
    SessionVariable,
    Tablespace,
)
from fhirschema.model.physical import PhysicalDataModel, transitive_dependencies
from fhirschema.model.privileges import GroupPrivilege, privileges_for
from fhirschema.model.rowtype import (
    ARRAY_SIZE,
    RowArrayType,
    RowType,
    RowTypeBuilder,
    check_batch_size,
)
from fhirschema.model.table import ColumnDef, IndexDef, PrimaryKeyDef, Table, TableBuilder

__all__ = [
    "ARRAY_SIZE",
    "Barrier",
    "ColumnDef",
    "DatabaseObject",
    "GroupPrivilege",
    "INITIAL_VERSION",
    "IndexDef",
    "NopObject",
    "ObjectGroup",
    "PhysicalDataModel",
    "PrimaryKeyDef",
    "Procedure",
    "RowArrayType",
    "RowType",
    "RowTypeBuilder",
    "Sequence",
    "SessionVariable",
    "Table",
    "TableBuilder",
    "Tablespace",
    "check_batch_size",
    "privileges_for",
    "transitive_dependencies",
]
