from __future__ import annotations

import logging

from .records import Record

log = logging.getLogger(__name__)

PAGE_SIZE = 100


def page_query(offset: int) -> str:
    if offset > 0:
        return f"limit {PAGE_SIZE} offset {offset}"
    return f"limit {PAGE_SIZE}"


def fetch_all_records(client, fields: list[str] | None = None) -> list[Record]:
    """Collect every record page by page until a short page comes back.

    The offset is the number of records collected so far, so records the
    server duplicates or reorders between pages are not detected.
    """
    records: list[Record] = []
    while True:
        page = client.get_records(fields, page_query(len(records)))
        records.extend(page)
        log.debug("fetched page of %d records (%d total)", len(page), len(records))
        if len(page) < PAGE_SIZE:
            return records
