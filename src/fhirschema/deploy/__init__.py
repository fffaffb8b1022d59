"""Turn a sealed model into ordered statements and apply them."""

from fhirschema.deploy.codegen import DdlGenerator
from fhirschema.deploy.exporter import export_plan_yaml
from fhirschema.deploy.plan import DeploymentPlan, PlannedObject, Wave, plan
from fhirschema.deploy.runner import RecordingTarget, Runner, Target

__all__ = [
    "DdlGenerator",
    "DeploymentPlan",
    "PlannedObject",
    "Wave",
    "plan",
    "Runner",
    "Target",
    "RecordingTarget",
    "export_plan_yaml",
]
