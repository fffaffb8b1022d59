"""Exception classes for fhirschema."""

from fhirschema.types import ObjectKey

__all__ = [
    "FhirSchemaError",
    "ConfigError",
    "ResourceTypeLoadError",
    "TemplateError",
    "DefinitionError",
    "DuplicateObjectError",
    "DanglingColumnError",
    "PreconditionError",
    "ObjectSealedError",
    "ModelSealedError",
    "UnregisteredDependencyError",
    "BatchLimitError",
    "GrantError",
    "CycleError",
    "CollaboratorError",
    "CodegenError",
    "DeploymentError",
]


class FhirSchemaError(Exception):
    """Base exception for fhirschema."""


class ConfigError(FhirSchemaError):
    """Error in configuration."""


class ResourceTypeLoadError(FhirSchemaError):
    """Error loading a resource type catalog file."""


class TemplateError(FhirSchemaError):
    """Error reading a stored procedure template."""


class DefinitionError(FhirSchemaError):
    """The schema description itself is wrong. Never retried."""


class DuplicateObjectError(DefinitionError):
    """Two objects registered with the same (schema, name, kind)."""

    def __init__(self, key: ObjectKey):
        self.key = key
        super().__init__(f"Duplicate object definition: {key}")


class DanglingColumnError(DefinitionError):
    """An index, primary key or include list names an undeclared column."""


class PreconditionError(DefinitionError):
    """A required object was not defined before something that needs it."""


class ObjectSealedError(DefinitionError):
    """Dependencies added to an object already registered in a model."""


class ModelSealedError(DefinitionError):
    """Registration attempted on a sealed model."""


class UnregisteredDependencyError(DefinitionError):
    """An object depends on something the model has never seen."""


class BatchLimitError(DefinitionError):
    """More structured values passed than an array type can carry."""


class GrantError(DefinitionError):
    """A privilege that makes no sense for the object it is granted on."""


class CycleError(FhirSchemaError):
    """The dependency graph is not acyclic."""

    def __init__(self, cycle: list[ObjectKey]):
        self.cycle = cycle
        path = " -> ".join(str(k) for k in cycle)
        super().__init__(f"Dependency cycle detected: {path}")


class CollaboratorError(FhirSchemaError):
    """The resource table factory failed to produce a group."""


class DeploymentError(FhirSchemaError):
    """Applying a deployment plan to a target failed."""


class CodegenError(FhirSchemaError):
    """Error rendering DDL for a schema object."""
