"""Export deployment plans to YAML."""

from pathlib import Path
from typing import Any

import yaml

from fhirschema.deploy.plan import DeploymentPlan, PlannedObject


def plan_to_dict(plan: DeploymentPlan) -> dict[str, Any]:
    """Convert a DeploymentPlan to a dictionary suitable for YAML export."""
    return {
        "waves": [
            {
                "wave": wave.index,
                "objects": [_object_to_dict(obj) for obj in wave.objects],
            }
            for wave in plan.waves
        ]
    }


def _object_to_dict(obj: PlannedObject) -> dict[str, Any]:
    data: dict[str, Any] = {
        "kind": obj.key.kind.value,
        "name": obj.key.name,
    }
    if obj.key.schema:
        data["schema"] = obj.key.schema
    data["version"] = obj.version

    if obj.dependencies:
        data["depends_on"] = [str(k) for k in obj.dependencies]

    data["statements"] = len(obj.statements)
    return data


def export_plan_yaml(plan: DeploymentPlan) -> str:
    """Export a plan to a YAML string."""
    return yaml.dump(
        plan_to_dict(plan), default_flow_style=False, sort_keys=False, allow_unicode=True
    )


def export_plan_to_file(plan: DeploymentPlan, path: Path) -> Path:
    """Write the YAML for a plan, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_plan_yaml(plan))
    return path
