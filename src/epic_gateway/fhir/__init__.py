from .document_reference import DocumentReferenceBuilder
from .fhir_client import FHIRClient
from .gateway import ResourceGateway

__all__ = ["DocumentReferenceBuilder", "FHIRClient", "ResourceGateway"]
