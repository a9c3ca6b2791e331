"""fhirgate: FHIR resource validation and CI reporting."""

__version__ = "0.1.0-dev"
