"""The physical data model: object registry and dependency scheduler."""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from typing import Callable, Iterable, Optional

from fhirschema.exceptions import (
    CycleError,
    DuplicateObjectError,
    ModelSealedError,
    UnregisteredDependencyError,
)
from fhirschema.model.objects import DatabaseObject, ObjectGroup, Procedure
from fhirschema.model.privileges import GroupPrivilege
from fhirschema.model.table import Table
from fhirschema.types import ObjectKey, ObjectKind, ObjectName, SchemaName

__all__ = ["PhysicalDataModel", "transitive_dependencies"]

logger = logging.getLogger(__name__)


class PhysicalDataModel:
    """All schema objects of one generation run, and their application order.

    Registered objects are the nodes of the dependency graph. An ObjectGroup
    is a single node; its members are known to the model (for duplicate
    detection and dependency resolution) but are not nodes themselves.

    Ordering is a topological sort with ties broken by registration order,
    so the same build always yields the same order.
    """

    def __init__(self) -> None:
        self._objects: dict[ObjectKey, DatabaseObject] = {}
        self._owners: dict[ObjectKey, DatabaseObject] = {}
        self._tables: list[Table] = []
        self._procedures: list[Procedure] = []
        self._sealed = False

    def add_object(self, obj: DatabaseObject) -> DatabaseObject:
        """Register an object. Seals it against further dependency changes."""
        self._check_not_sealed()
        keys = [obj.key]
        if isinstance(obj, ObjectGroup):
            keys.extend(m.key for m in obj.members)
        for key in keys:
            if key in self._owners:
                raise DuplicateObjectError(key)

        self._objects[obj.key] = obj
        for key in keys:
            self._owners[key] = obj
        obj.seal()
        logger.debug("Registered %s (version %d)", obj.key, obj.version)
        return obj

    def add_table(self, table: Table) -> Table:
        self.add_object(table)
        self._tables.append(table)
        return table

    def add_procedure(
        self,
        schema_name: SchemaName,
        procedure_name: ObjectName,
        version: int,
        body_provider: Callable[[], str],
        dependencies: Iterable[DatabaseObject],
        privileges: Iterable[GroupPrivilege] = (),
    ) -> Procedure:
        procedure = Procedure(schema_name, procedure_name, version, body_provider)
        procedure.add_dependencies(dependencies)
        procedure.add_privileges(privileges)
        self.add_object(procedure)
        self._procedures.append(procedure)
        return procedure

    def seal(self) -> None:
        """Freeze the model. Fails if the graph is cyclic or has dangling edges."""
        self.apply_order()
        self._sealed = True
        logger.debug("Model sealed with %d objects", len(self._objects))

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    @property
    def objects(self) -> tuple[DatabaseObject, ...]:
        return tuple(self._objects.values())

    @property
    def tables(self) -> tuple[Table, ...]:
        return tuple(self._tables)

    @property
    def procedures(self) -> tuple[Procedure, ...]:
        return tuple(self._procedures)

    def all_tables(self) -> list[Table]:
        """Tables registered directly plus tables inside groups."""
        tables: list[Table] = []
        for obj in self._objects.values():
            if isinstance(obj, Table):
                tables.append(obj)
            elif isinstance(obj, ObjectGroup):
                tables.extend(m for m in obj.members if isinstance(m, Table))
        return tables

    def contains(self, obj: DatabaseObject) -> bool:
        return obj.key in self._owners

    def get(
        self, schema_name: SchemaName, name: ObjectName, kind: ObjectKind
    ) -> Optional[DatabaseObject]:
        """Get a registered object, or a group member, by identity."""
        key = ObjectKey(schema_name, name, kind)
        owner = self._owners.get(key)
        if owner is None:
            return None
        if owner.key == key:
            return owner
        return next(m for m in owner.members if m.key == key)

    def apply_order(self) -> list[DatabaseObject]:
        """Every object after all of its dependencies, ties by registration order."""
        graph = self._graph()
        keys = list(self._objects)
        position = {key: i for i, key in enumerate(keys)}

        remaining = {key: len(deps) for key, deps in graph.items()}
        dependents: dict[ObjectKey, list[ObjectKey]] = defaultdict(list)
        for key, deps in graph.items():
            for dep in deps:
                dependents[dep].append(key)

        ready = [position[key] for key, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: list[DatabaseObject] = []
        while ready:
            key = keys[heapq.heappop(ready)]
            order.append(self._objects[key])
            for dependent in dependents[key]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        if len(order) != len(keys):
            done = {obj.key for obj in order}
            raise CycleError(_find_cycle(graph, [k for k in keys if k not in done]))
        return order

    def waves(self) -> tuple[tuple[DatabaseObject, ...], ...]:
        """Group objects into waves that can each be applied concurrently.

        An object lands in wave k where k is the length of its longest
        dependency path, so no two objects in a wave depend on each other
        and every dependency sits in an earlier wave.
        """
        graph = self._graph()
        level: dict[ObjectKey, int] = {}
        for obj in self.apply_order():
            deps = graph[obj.key]
            level[obj.key] = 1 + max(level[d] for d in deps) if deps else 0

        waves: list[list[DatabaseObject]] = []
        for key, obj in self._objects.items():
            k = level[key]
            while len(waves) <= k:
                waves.append([])
            waves[k].append(obj)
        return tuple(tuple(wave) for wave in waves)

    def visit(self, fn: Callable[[DatabaseObject], None]) -> None:
        """Call fn for every object in application order."""
        for obj in self.apply_order():
            fn(obj)

    def _graph(self) -> dict[ObjectKey, list[ObjectKey]]:
        """Node key -> node keys it depends on, with members folded into groups."""
        graph: dict[ObjectKey, list[ObjectKey]] = {}
        for key, obj in self._objects.items():
            deps: list[ObjectKey] = []
            for dep in obj.edge_dependencies():
                owner = self._owners.get(dep.key)
                if owner is None:
                    raise UnregisteredDependencyError(
                        f"{key} depends on {dep.key}, which is not in the model"
                    )
                if owner.key != key and owner.key not in deps:
                    deps.append(owner.key)
            graph[key] = deps
        return graph

    def _check_not_sealed(self) -> None:
        if self._sealed:
            raise ModelSealedError("The model is sealed; no more objects can be added")


def transitive_dependencies(obj: DatabaseObject) -> set[DatabaseObject]:
    """Everything obj depends on, directly or not.

    Depending on a group means depending on each of its members too.
    """
    seen: set[DatabaseObject] = set()
    stack = list(obj.edge_dependencies())
    while stack:
        dep = stack.pop()
        if dep in seen:
            continue
        seen.add(dep)
        stack.extend(dep.edge_dependencies())
        if isinstance(dep, ObjectGroup):
            stack.extend(dep.members)
    return seen


def _find_cycle(
    graph: dict[ObjectKey, list[ObjectKey]], unresolved: list[ObjectKey]
) -> list[ObjectKey]:
    """Return one cycle among the unresolved nodes, first node repeated at the end."""
    candidates = set(unresolved)
    visited: set[ObjectKey] = set()
    for start in unresolved:
        if start in visited:
            continue
        path: list[ObjectKey] = [start]
        on_path = {start}
        iters = [iter(graph[start])]
        visited.add(start)
        while iters:
            nxt = next(iters[-1], None)
            if nxt is None:
                on_path.discard(path.pop())
                iters.pop()
                continue
            if nxt not in candidates:
                continue
            if nxt in on_path:
                return path[path.index(nxt):] + [nxt]
            if nxt not in visited:
                visited.add(nxt)
                path.append(nxt)
                on_path.add(nxt)
                iters.append(iter(graph[nxt]))
    return unresolved
