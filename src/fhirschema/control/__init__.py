"""FHIR data schema build recipe."""
