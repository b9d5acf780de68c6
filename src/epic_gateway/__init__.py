"""Epic FHIR backend-services gateway."""

__version__ = "0.1.0"
