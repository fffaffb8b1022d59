"""Schema object representation classes.

Every object carries an identity (schema, name, kind), an integer version and
a set of dependencies on other objects. Objects are compared and hashed by
identity, so a dependency set is a set of keys in practice.

Dependencies can only be added. Once an object is registered in a
PhysicalDataModel it is sealed and its dependencies and grants are frozen.
"""

from typing import Callable, Iterable, Optional

from fhirschema.exceptions import DefinitionError, ObjectSealedError
from fhirschema.model.privileges import GroupPrivilege, check_grant
from fhirschema.types import ObjectKey, ObjectKind, ObjectName, SchemaName

INITIAL_VERSION = 1

__all__ = [
    "INITIAL_VERSION",
    "DatabaseObject",
    "Sequence",
    "SessionVariable",
    "Tablespace",
    "NopObject",
    "Barrier",
    "ObjectGroup",
    "Procedure",
]


class DatabaseObject:
    """Base class for anything the deployment order is computed over."""

    kind: ObjectKind

    def __init__(
        self,
        schema_name: SchemaName,
        object_name: ObjectName,
        version: int = INITIAL_VERSION,
    ):
        if not object_name:
            raise DefinitionError("Schema objects must have a name")
        if version < 1:
            raise DefinitionError(
                f"Invalid version {version} for {schema_name}.{object_name}"
            )
        self.schema_name = schema_name
        self.object_name = object_name
        self.version = version
        self._dependencies: dict[ObjectKey, DatabaseObject] = {}
        self._privileges: list[GroupPrivilege] = []
        self._sealed = False

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.schema_name, self.object_name, self.kind)

    @property
    def qualified_name(self) -> str:
        if self.schema_name:
            return f"{self.schema_name}.{self.object_name}"
        return self.object_name

    @property
    def dependencies(self) -> tuple["DatabaseObject", ...]:
        """Direct dependencies in the order they were added."""
        return tuple(self._dependencies.values())

    @property
    def privileges(self) -> tuple[GroupPrivilege, ...]:
        return tuple(self._privileges)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def add_dependencies(self, deps: Iterable["DatabaseObject"]) -> "DatabaseObject":
        """Add dependencies. Objects already present are kept once."""
        self._check_not_sealed()
        for dep in deps:
            if dep is None:
                raise DefinitionError(f"None dependency added to {self.key}")
            if dep.key == self.key:
                raise DefinitionError(f"{self.key} cannot depend on itself")
            self._dependencies.setdefault(dep.key, dep)
        return self

    def add_privilege(self, privilege: GroupPrivilege) -> None:
        self._check_not_sealed()
        check_grant(self.kind, privilege.privilege)
        self._privileges.append(privilege)

    def add_privileges(self, privileges: Iterable[GroupPrivilege]) -> "DatabaseObject":
        for p in privileges:
            self.add_privilege(p)
        return self

    def edge_dependencies(self) -> tuple["DatabaseObject", ...]:
        """Dependencies the scheduler must respect for this object."""
        return self.dependencies

    def seal(self) -> None:
        self._sealed = True

    def _check_not_sealed(self) -> None:
        if self._sealed:
            raise ObjectSealedError(
                f"{self.key} is registered in a model and can no longer change"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DatabaseObject):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.qualified_name!r}, version={self.version})"


class Sequence(DatabaseObject):
    """CREATE SEQUENCE ... AS BIGINT START WITH 1 CACHE n NO CYCLE."""

    kind = ObjectKind.SEQUENCE

    def __init__(
        self,
        schema_name: SchemaName,
        object_name: ObjectName,
        version: int = INITIAL_VERSION,
        cache: int = 1000,
        start_with: int = 1,
        cycle: bool = False,
    ):
        super().__init__(schema_name, object_name, version)
        if cache < 0:
            raise DefinitionError(f"Sequence {object_name} cache must be >= 0")
        self.cache = cache
        self.start_with = start_with
        self.cycle = cycle


class SessionVariable(DatabaseObject):
    """Session-scoped variable holding the active tenant id."""

    kind = ObjectKind.VARIABLE

    def __init__(
        self,
        schema_name: SchemaName,
        object_name: ObjectName,
        version: int = INITIAL_VERSION,
    ):
        super().__init__(schema_name, object_name, version)


class Tablespace(DatabaseObject):
    """Tablespaces are database-wide, so they carry an empty schema name."""

    kind = ObjectKind.TABLESPACE

    def __init__(
        self,
        tablespace_name: ObjectName,
        version: int = INITIAL_VERSION,
        extent_size_kb: int = 128,
    ):
        super().__init__("", tablespace_name, version)
        self.extent_size_kb = extent_size_kb


class NopObject(DatabaseObject):
    """Dependency-only marker with no physical artifact."""

    kind = ObjectKind.NOP


class Barrier(NopObject):
    """A NopObject whose dependency set is computed, not curated.

    The barrier depends on exactly the objects it is constructed with and
    refuses further dependencies. Everything that depends on the barrier
    is therefore ordered after every one of those objects.
    """

    def __init__(
        self,
        schema_name: SchemaName,
        object_name: ObjectName,
        collected: Iterable[DatabaseObject],
    ):
        super().__init__(schema_name, object_name)
        super().add_dependencies(collected)

    def add_dependencies(self, deps: Iterable[DatabaseObject]) -> DatabaseObject:
        raise DefinitionError(
            f"Barrier {self.qualified_name} dependencies are fixed at construction"
        )


class ObjectGroup(DatabaseObject):
    """A collection of objects applied as one unit, sharing one version.

    Members may depend on each other; those edges stay inside the group and
    members are applied in the order given. Edges from a member to anything
    outside the group become edges of the group.
    """

    kind = ObjectKind.GROUP

    def __init__(
        self,
        schema_name: SchemaName,
        object_name: ObjectName,
        version: int,
        members: Iterable[DatabaseObject],
    ):
        super().__init__(schema_name, object_name, version)
        self._members = tuple(members)
        if not self._members:
            raise DefinitionError(f"Object group {object_name} has no members")
        seen: set[ObjectKey] = set()
        for member in self._members:
            if isinstance(member, ObjectGroup):
                raise DefinitionError(
                    f"Object group {object_name} cannot contain group {member.key}"
                )
            if member.key in seen:
                raise DefinitionError(
                    f"Object group {object_name} lists {member.key} twice"
                )
            seen.add(member.key)
            member.version = version

    @property
    def members(self) -> tuple[DatabaseObject, ...]:
        return self._members

    def member_keys(self) -> set[ObjectKey]:
        return {m.key for m in self._members}

    def edge_dependencies(self) -> tuple[DatabaseObject, ...]:
        inside = self.member_keys()
        deps: dict[ObjectKey, DatabaseObject] = dict(self._dependencies)
        for member in self._members:
            for dep in member.dependencies:
                if dep.key not in inside:
                    deps.setdefault(dep.key, dep)
        return tuple(deps.values())

    def seal(self) -> None:
        super().seal()
        for member in self._members:
            member.seal()


class Procedure(DatabaseObject):
    """Stored procedure whose body text is produced on demand.

    The body is opaque SQL. It is read once, the first time it is needed.
    """

    kind = ObjectKind.PROCEDURE

    def __init__(
        self,
        schema_name: SchemaName,
        object_name: ObjectName,
        version: int,
        body_provider: Callable[[], str],
    ):
        super().__init__(schema_name, object_name, version)
        self._body_provider = body_provider
        self._body: Optional[str] = None

    @property
    def body(self) -> str:
        if self._body is None:
            self._body = self._body_provider()
        return self._body
