"""The closed list of FHIR resource types a schema is generated for."""

import re
from pathlib import Path

import yaml

from fhirschema.exceptions import ResourceTypeLoadError

__all__ = ["ALL_RESOURCE_TYPES", "load_resource_types", "validate_resource_types"]

_RESOURCE_TYPE_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")

# FHIR R4 resource types, in value set order
ALL_RESOURCE_TYPES: tuple[str, ...] = (
    "Account",
    "ActivityDefinition",
    "AdverseEvent",
    "AllergyIntolerance",
    "Appointment",
    "AppointmentResponse",
    "AuditEvent",
    "Basic",
    "Binary",
    "BiologicallyDerivedProduct",
    "BodyStructure",
    "Bundle",
    "CapabilityStatement",
    "CarePlan",
    "CareTeam",
    "CatalogEntry",
    "ChargeItem",
    "ChargeItemDefinition",
    "Claim",
    "ClaimResponse",
    "ClinicalImpression",
    "CodeSystem",
    "Communication",
    "CommunicationRequest",
    "CompartmentDefinition",
    "Composition",
    "ConceptMap",
    "Condition",
    "Consent",
    "Contract",
    "Coverage",
    "CoverageEligibilityRequest",
    "CoverageEligibilityResponse",
    "DetectedIssue",
    "Device",
    "DeviceDefinition",
    "DeviceMetric",
    "DeviceRequest",
    "DeviceUseStatement",
    "DiagnosticReport",
    "DocumentManifest",
    "DocumentReference",
    "EffectEvidenceSynthesis",
    "Encounter",
    "Endpoint",
    "EnrollmentRequest",
    "EnrollmentResponse",
    "EpisodeOfCare",
    "EventDefinition",
    "Evidence",
    "EvidenceVariable",
    "ExampleScenario",
    "ExplanationOfBenefit",
    "FamilyMemberHistory",
    "Flag",
    "Goal",
    "GraphDefinition",
    "Group",
    "GuidanceResponse",
    "HealthcareService",
    "ImagingStudy",
    "Immunization",
    "ImmunizationEvaluation",
    "ImmunizationRecommendation",
    "ImplementationGuide",
    "InsurancePlan",
    "Invoice",
    "Library",
    "Linkage",
    "List",
    "Location",
    "Measure",
    "MeasureReport",
    "Media",
    "Medication",
    "MedicationAdministration",
    "MedicationDispense",
    "MedicationKnowledge",
    "MedicationRequest",
    "MedicationStatement",
    "MedicinalProduct",
    "MedicinalProductAuthorization",
    "MedicinalProductContraindication",
    "MedicinalProductIndication",
    "MedicinalProductIngredient",
    "MedicinalProductInteraction",
    "MedicinalProductManufactured",
    "MedicinalProductPackaged",
    "MedicinalProductPharmaceutical",
    "MedicinalProductUndesirableEffect",
    "MessageDefinition",
    "MessageHeader",
    "MolecularSequence",
    "NamingSystem",
    "NutritionOrder",
    "Observation",
    "ObservationDefinition",
    "OperationDefinition",
    "OperationOutcome",
    "Organization",
    "OrganizationAffiliation",
    "Parameters",
    "Patient",
    "PaymentNotice",
    "PaymentReconciliation",
    "Person",
    "PlanDefinition",
    "Practitioner",
    "PractitionerRole",
    "Procedure",
    "Provenance",
    "Questionnaire",
    "QuestionnaireResponse",
    "RelatedPerson",
    "RequestGroup",
    "ResearchDefinition",
    "ResearchElementDefinition",
    "ResearchStudy",
    "ResearchSubject",
    "RiskAssessment",
    "RiskEvidenceSynthesis",
    "Schedule",
    "SearchParameter",
    "ServiceRequest",
    "Slot",
    "Specimen",
    "SpecimenDefinition",
    "StructureDefinition",
    "StructureMap",
    "Subscription",
    "Substance",
    "SubstanceNucleicAcid",
    "SubstancePolymer",
    "SubstanceProtein",
    "SubstanceReferenceInformation",
    "SubstanceSourceMaterial",
    "SubstanceSpecification",
    "SupplyDelivery",
    "SupplyRequest",
    "Task",
    "TerminologyCapabilities",
    "TestReport",
    "TestScript",
    "ValueSet",
    "VerificationResult",
    "VisionPrescription",
)


def validate_resource_types(resource_types: list[str]) -> list[str]:
    """Check names are well formed and unique. Returns the list unchanged."""
    if not resource_types:
        raise ResourceTypeLoadError("Resource type list is empty")
    seen: set[str] = set()
    for name in resource_types:
        if not isinstance(name, str) or not _RESOURCE_TYPE_RE.match(name):
            raise ResourceTypeLoadError(f"Invalid resource type name: {name!r}")
        if name in seen:
            raise ResourceTypeLoadError(f"Duplicate resource type '{name}'")
        seen.add(name)
    return resource_types


def load_resource_types(path: Path) -> list[str]:
    """Load a resource type catalog from YAML.

    The file is either a plain list of names or a mapping with a
    ``resource_types`` key holding that list. Order is preserved.
    """
    if not path.is_file():
        raise ResourceTypeLoadError(f"Resource type file does not exist: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ResourceTypeLoadError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        raise ResourceTypeLoadError(f"Empty YAML file: {path}")

    if isinstance(data, dict):
        unknown = set(data.keys()) - {"resource_types"}
        if unknown:
            raise ResourceTypeLoadError(
                f"Unknown field(s) in resource type file: {', '.join(sorted(unknown))}"
            )
        data = data.get("resource_types")

    if not isinstance(data, list):
        raise ResourceTypeLoadError(
            f"Expected a list of resource types in {path}, got {type(data).__name__}"
        )

    return validate_resource_types(data)
