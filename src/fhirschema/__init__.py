"""FHIR persistence schema generator."""

__version__ = "0.1.0"
