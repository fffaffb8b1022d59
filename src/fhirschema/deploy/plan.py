"""Deployment plan: the waves of a sealed model with their statements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fhirschema.deploy.codegen import DdlGenerator
from fhirschema.exceptions import DefinitionError
from fhirschema.model.physical import PhysicalDataModel
from fhirschema.types import ObjectKey

__all__ = ["PlannedObject", "Wave", "DeploymentPlan", "plan"]


@dataclass(frozen=True)
class PlannedObject:
    key: ObjectKey
    version: int
    statements: tuple[str, ...]
    dependencies: tuple[ObjectKey, ...]


@dataclass(frozen=True)
class Wave:
    """Objects with no dependency between them.

    Every object of wave k must be applied before wave k+1 starts.
    """

    index: int
    objects: tuple[PlannedObject, ...]


@dataclass(frozen=True)
class DeploymentPlan:
    waves: tuple[Wave, ...]

    @classmethod
    def from_model(
        cls, model: PhysicalDataModel, generator: Optional[DdlGenerator] = None
    ) -> DeploymentPlan:
        return plan(model, generator)

    def objects(self) -> list[PlannedObject]:
        return [obj for wave in self.waves for obj in wave.objects]

    def statement_count(self) -> int:
        return sum(len(obj.statements) for obj in self.objects())

    def find(self, key: ObjectKey) -> Optional[PlannedObject]:
        for obj in self.objects():
            if obj.key == key:
                return obj
        return None


def plan(
    model: PhysicalDataModel, generator: Optional[DdlGenerator] = None
) -> DeploymentPlan:
    """
    Pure function: turn a sealed model into a deployment plan.

    Args:
        model: A model that has been sealed (and so checked for cycles).
        generator: Statement renderer, DdlGenerator by default.

    Returns:
        DeploymentPlan with one Wave per scheduling step.
    """
    if not model.is_sealed:
        raise DefinitionError("Only a sealed model can be planned")
    generator = generator or DdlGenerator()

    waves = []
    for index, wave in enumerate(model.waves()):
        waves.append(
            Wave(
                index=index,
                objects=tuple(
                    PlannedObject(
                        key=obj.key,
                        version=obj.version,
                        statements=tuple(generator.statements(obj)),
                        dependencies=tuple(d.key for d in obj.edge_dependencies()),
                    )
                    for obj in wave
                ),
            )
        )
    return DeploymentPlan(waves=tuple(waves))
