from eyecare.schemas import client_record, common

__all__ = [
    "client_record",
    "common",
]
