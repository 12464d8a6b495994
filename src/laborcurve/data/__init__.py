"""
Logbook records and storage for LaborCurve.

Modules:
    records: Encounter and event dataclasses, JSON conversion
    store: JSON-file logbook (LogbookStore)

Usage:
    >>> from laborcurve.data import LogbookStore, Encounter, CervicalExam
    >>> store = LogbookStore("data/logbook.json")
    >>> encounters = store.list_encounters(status="open")
"""

from .records import (
    CervicalExam,
    Encounter,
    EncounterStatus,
    Event,
    EventKind,
    FetalStatus,
    InvalidRecordError,
    Medication,
    OutcomeMode,
    RecordError,
    Rupture,
    Vitals,
    event_from_dict,
    event_to_dict,
    new_id,
    sort_events,
)
from .store import (
    EncounterNotFoundError,
    ImportReport,
    InvalidImportError,
    LogbookError,
    LogbookStore,
    export_filename,
)

__all__ = [
    "CervicalExam",
    "Encounter",
    "EncounterStatus",
    "Event",
    "EventKind",
    "FetalStatus",
    "InvalidRecordError",
    "Medication",
    "OutcomeMode",
    "RecordError",
    "Rupture",
    "Vitals",
    "event_from_dict",
    "event_to_dict",
    "new_id",
    "sort_events",
    "EncounterNotFoundError",
    "ImportReport",
    "InvalidImportError",
    "LogbookError",
    "LogbookStore",
    "export_filename",
]
