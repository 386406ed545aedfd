# noqa: F401 to ensure models are imported for metadata
from eyecare.models.client_record import ClientRecord

__all__ = [
    "ClientRecord",
]
