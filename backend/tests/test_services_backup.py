import csv
import io
import json
from datetime import date
from uuid import UUID

import pytest

from eyecare.core.exceptions import ConstraintViolation, ParseError, ValidationError
from eyecare.services.backup import (
    CSV_HEADERS,
    BackupService,
    backup_filename,
    detect_format,
    format_bytes,
    validate_records,
)
from eyecare.services.lifecycle import LifecycleService
from eyecare.services.record_store import RecordStore
from tests.conftest import make_record  # type: ignore


def _seed(store: RecordStore) -> None:
    store.put(make_record("Asha", "EC-1", email="asha@example.com", notes="Prefers matte, lightweight frames"))
    store.put(make_record("Ravi", "EC-2", pupilDistance=62.5))


def test_export_json_envelope(store: RecordStore, backup: BackupService) -> None:
    _seed(store)

    envelope = json.loads(backup.export_json())

    assert envelope["version"] == "1.0"
    assert envelope["totalUsers"] == 2
    assert "exportDate" in envelope
    first = envelope["users"][0]
    assert first["clientCode"] == "EC-1"
    assert first["leftEye"]["axis"] == 90
    assert first["status"] == "active"


def test_json_round_trip_keeps_ids(store: RecordStore, backup: BackupService) -> None:
    _seed(store)
    original = {record.id: record for record in store.get_all()}
    exported = backup.export_json()

    store.delete(next(iter(original)))
    result = backup.import_json(exported)

    assert result.imported == 2
    restored = {record.id: record for record in store.get_all()}
    assert set(restored) == set(original)
    for record_id, record in original.items():
        assert restored[record_id].client_code == record.client_code
        assert restored[record_id].created_at == record.created_at


def test_import_json_missing_users_leaves_store_unchanged(store: RecordStore, backup: BackupService) -> None:
    _seed(store)

    with pytest.raises(ValidationError) as excinfo:
        backup.import_json(json.dumps({"version": "1.0", "totalUsers": 0}))

    assert excinfo.value.violations[0].field == "users"
    assert len(store.get_all()) == 2


def test_import_json_rejects_whole_file_with_indexed_violations(store: RecordStore, backup: BackupService) -> None:
    payload = {
        "users": [
            {"name": "Asha", "mobile": "555", "clientCode": "EC-1", "leftEye": {}, "rightEye": {}},
            {"name": "Ravi", "mobile": "", "clientCode": "EC-2", "leftEye": {}},
        ]
    }

    with pytest.raises(ValidationError) as excinfo:
        backup.import_json(json.dumps(payload))

    fields = {(item.index, item.field) for item in excinfo.value.violations}
    assert fields == {(1, "mobile"), (1, "rightEye")}
    assert store.get_all() == []


def test_import_json_reports_schema_errors(backup: BackupService) -> None:
    payload = [{"name": "Asha", "mobile": "555", "clientCode": "EC-1", "leftEye": {"axis": 200}, "rightEye": {}}]

    with pytest.raises(ValidationError) as excinfo:
        backup.import_json(json.dumps(payload))

    assert excinfo.value.violations[0].field == "leftEye.axis"


def test_import_json_malformed_raises_parse_error(backup: BackupService) -> None:
    with pytest.raises(ParseError):
        backup.import_json("{not json")


def test_import_json_accepts_legacy_array_with_integer_ids(store: RecordStore, backup: BackupService) -> None:
    legacy = [
        {
            "id": 7,
            "name": "Kim",
            "mobile": "555",
            "clientCode": "EC-LEGACY-1",
            "leftEye": {"spherical": "", "axis": "45"},
            "rightEye": {"spherical": "-0.75"},
            "createdAt": "2023-05-01T10:00:00.000Z",
            "updatedAt": "2023-05-02T10:00:00.000Z",
        }
    ]

    backup.import_json(json.dumps(legacy))
    backup.import_json(json.dumps(legacy))

    records = store.get_all()
    assert len(records) == 1
    assert isinstance(records[0].id, UUID)
    assert records[0].left_eye.axis == 45
    assert records[0].left_eye.spherical is None
    assert records[0].right_eye.spherical == -0.75


def test_validate_records_collects_all_violations() -> None:
    records, violations = validate_records(["oops", {"name": "Asha"}])

    assert records == []
    assert (0, "record") in {(item.index, item.field) for item in violations}
    assert {item.field for item in violations if item.index == 1} == {"mobile", "clientCode", "leftEye", "rightEye"}


def test_export_csv_quotes_every_field(store: RecordStore, backup: BackupService) -> None:
    _seed(store)

    text = backup.export_csv()
    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0] == CSV_HEADERS
    assert len(rows) == 3
    assert all(len(row) == 16 for row in rows)
    assert rows[1][:4] == ["EC-1", "Asha", "+91 98450 12345", "asha@example.com"]
    assert rows[1][8:11] == ["-1.25", "-0.5", "90"]
    assert rows[1][13] == "Prefers matte, lightweight frames"
    assert rows[2][12] == "62.5"
    assert text.splitlines()[1].startswith('"EC-1","Asha"')


def test_export_csv_empty_store_fails(backup: BackupService) -> None:
    with pytest.raises(ValidationError):
        backup.export_csv()


def test_csv_reimport_creates_new_records(store: RecordStore, backup: BackupService) -> None:
    _seed(store)
    text = backup.export_csv()
    store.clear()

    result = backup.import_csv(text)

    assert result.imported == 2
    asha = store.get_by_client_code("EC-1")
    assert asha.notes == "Prefers matte, lightweight frames"
    assert asha.left_eye.axis == 90


def test_csv_round_trip_keeps_number_precision(store: RecordStore, backup: BackupService) -> None:
    store.put(make_record("Asha", "EC-1", pupilDistance=62.123456, rightEye={"spherical": -1.0, "addPower": 2.125}))
    text = backup.export_csv()

    row = list(csv.reader(io.StringIO(text)))[1]
    assert row[4] == "-1"
    assert row[7] == "2.125"
    assert row[12] == "62.123456"

    store.clear()
    backup.import_csv(text)

    asha = store.get_by_client_code("EC-1")
    assert asha.pupil_distance == 62.123456
    assert asha.right_eye.add_power == 2.125


def test_restore_accepts_legacy_email_shapes(
    store: RecordStore, backup: BackupService, lifecycle: LifecycleService
) -> None:
    legacy = [
        {
            "id": 1,
            "name": "Kim",
            "mobile": "555",
            "email": "kim@optics.local",
            "clientCode": "EC-1",
            "leftEye": {},
            "rightEye": {},
        },
        {
            "id": 2,
            "name": "Lee",
            "mobile": "556",
            "email": "lee@example.com",
            "clientCode": "EC-2",
            "leftEye": {},
            "rightEye": {},
        },
    ]

    result = backup.import_json(json.dumps(legacy))

    assert result.imported == 2
    kim = store.get_by_client_code("EC-1")
    assert kim.email == "kim@optics.local"
    assert lifecycle.complete(kim.id).email == "kim@optics.local"

    text = 'Client Code,Name,Mobile,Email,Right Eye SPH,Right Eye CYL\n"EC-3","Ana","557","ana@clinic.internal","",""\n'
    assert backup.import_csv(text).imported == 1
    assert store.get_by_client_code("EC-3").email == "ana@clinic.internal"


def test_restore_still_rejects_malformed_email(store: RecordStore, backup: BackupService) -> None:
    legacy = [
        {"name": "Kim", "mobile": "555", "email": "kim at optics", "clientCode": "EC-1", "leftEye": {}, "rightEye": {}}
    ]

    with pytest.raises(ValidationError) as exc_info:
        backup.import_json(json.dumps(legacy))

    assert exc_info.value.violations[0].field == "email"
    assert store.get_all() == []


def test_import_csv_short_row_with_blank_prescription(store: RecordStore, backup: BackupService) -> None:
    text = 'Client Code,Name,Mobile,Email,Right Eye SPH,Right Eye CYL\n"","Kim","555","","",""\n'

    result = backup.import_csv(text)

    assert result.imported == 1
    kim = store.get_all()[0]
    assert kim.name == "Kim"
    assert kim.client_code.startswith("EC-")
    assert kim.left_eye.is_empty()
    assert kim.right_eye.is_empty()


def test_import_csv_skips_incomplete_rows(store: RecordStore, backup: BackupService) -> None:
    text = "\n".join(
        [
            ",".join(CSV_HEADERS),
            '"EC-1","Asha","555"',
            '"EC-2","","555","","",""',
            '"EC-3","Ravi","","","",""',
            "",
            '"EC-4","Lee","555","","-2.00","-0.75","abc"',
            '"EC-5","Meera","555","","","","120"',
        ]
    )

    result = backup.import_csv(text)

    assert result.imported == 1
    assert result.skipped == 4
    assert [record.client_code for record in store.get_all()] == ["EC-5"]


def test_import_csv_without_rows_fails(backup: BackupService) -> None:
    with pytest.raises(ValidationError):
        backup.import_csv("Client Code,Name\n")
    with pytest.raises(ValidationError):
        backup.import_csv('header\n"a","b"\n')


def test_import_csv_duplicate_code_is_atomic(store: RecordStore, backup: BackupService) -> None:
    store.put(make_record("Asha", "EC-1"))
    text = 'h\n"EC-2","Ravi","555","","",""\n"EC-1","Kim","555","","",""\n'

    with pytest.raises(ConstraintViolation):
        backup.import_csv(text)

    assert [record.name for record in store.get_all()] == ["Asha"]


def test_import_any_detects_format_by_content(store: RecordStore, backup: BackupService) -> None:
    _seed(store)
    exported_json = backup.export_json().encode("utf-8")
    exported_csv = backup.export_csv().encode("utf-8")
    store.clear()

    assert backup.import_any(exported_json).format == "json"
    store.clear()
    assert backup.import_any(b"\xef\xbb\xbf" + exported_csv).format == "csv"
    assert len(store.get_all()) == 2


def test_detect_format() -> None:
    assert detect_format('  {"users": []}') == "json"
    assert detect_format("[]") == "json"
    assert detect_format("Client Code,Name") == "csv"


def test_invalid_utf8_raises_parse_error(backup: BackupService) -> None:
    with pytest.raises(ParseError):
        backup.import_any(b"\xff\xfe\xfa")


def test_stats(store: RecordStore, backup: BackupService) -> None:
    empty = backup.stats()
    assert empty.total_users == 0
    assert empty.last_modified is None

    _seed(store)
    stats = backup.stats()

    assert stats.total_users == 2
    assert stats.data_size > 0
    assert stats.data_size_formatted.endswith(("Bytes", "KB"))
    assert stats.last_modified == max(record.updated_at for record in store.get_all())


def test_backup_filenames() -> None:
    assert backup_filename("json", date(2024, 5, 1)) == "eyecare_backup_2024-05-01.json"
    assert backup_filename("csv", date(2024, 5, 1)) == "eyecare_data_2024-05-01.csv"


def test_format_bytes() -> None:
    assert format_bytes(0) == "0 Bytes"
    assert format_bytes(512) == "512 Bytes"
    assert format_bytes(1536) == "1.5 KB"
