from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from eyecare.models.client_record import ClientStatus
from eyecare.schemas.client_record import ClientRecordRead
from eyecare.services.record_store import collation_key


class SearchField(str, Enum):
    ALL = "all"
    NAME = "name"
    MOBILE = "mobile"
    CLIENT_CODE = "clientCode"
    EMAIL = "email"


class SortKey(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    NAME = "name"
    CLIENT_CODE = "clientCode"


_SEARCHABLE = {
    SearchField.NAME: "name",
    SearchField.MOBILE: "mobile",
    SearchField.CLIENT_CODE: "client_code",
    SearchField.EMAIL: "email",
}


def filter_by_status(records: Iterable[ClientRecordRead], status: ClientStatus | str) -> list[ClientRecordRead]:
    wanted = ClientStatus(status)
    return [record for record in records if (record.status or ClientStatus.ACTIVE) == wanted]


def search(
    records: Iterable[ClientRecordRead],
    term: str | None,
    field: SearchField | str = SearchField.ALL,
) -> list[ClientRecordRead]:
    """Case-insensitive substring match. A blank term matches nothing."""
    selected = SearchField(field)
    needle = (term or "").casefold()
    if not needle.strip():
        return []

    if selected is SearchField.ALL:
        attributes = list(_SEARCHABLE.values())
    else:
        attributes = [_SEARCHABLE[selected]]

    def matches(record: ClientRecordRead) -> bool:
        for attribute in attributes:
            value = getattr(record, attribute)
            if value and needle in value.casefold():
                return True
        return False

    return [record for record in records if matches(record)]


def sort_records(records: Iterable[ClientRecordRead], key: SortKey | str = SortKey.NAME) -> list[ClientRecordRead]:
    selected = SortKey(key)
    items = list(records)
    if selected is SortKey.NAME:
        return sorted(items, key=lambda record: collation_key(record.name))
    if selected is SortKey.CLIENT_CODE:
        return sorted(items, key=lambda record: collation_key(record.client_code))
    # sorted() is stable, ties keep input order in both directions
    if selected is SortKey.NEWEST:
        return sorted(items, key=_activity_time, reverse=True)
    return sorted(items, key=_activity_time)


def _activity_time(record: ClientRecordRead):
    return record.completed_at or record.created_at


def distinct_frame_options(records: Iterable[ClientRecordRead]) -> list[str]:
    options = {record.frame_option.strip() for record in records if record.frame_option and record.frame_option.strip()}
    return sorted(options, key=collation_key)
