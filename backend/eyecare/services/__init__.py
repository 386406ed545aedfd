from eyecare.services.backup import BackupService
from eyecare.services.client_record import ClientRecordService
from eyecare.services.lifecycle import LifecycleService
from eyecare.services.record_store import RecordStore

__all__ = [
    "BackupService",
    "ClientRecordService",
    "LifecycleService",
    "RecordStore",
]
