"""
Logbook Store.

A small key-value store for encounters, their events and the predictor
settings, persisted as one JSON file.

This module provides:
    - LogbookStore: CRUD over encounters/events/settings, with lookups by
      encounter, status filtering, free-text search, and full dump/import
    - ImportReport: Counts from an import

The predictor never touches the store; callers load records from here and
hand them to the engine as plain in-memory objects.

Example:
    >>> store = LogbookStore("data/logbook.json")
    >>> enc = Encounter.create("G1 39w IOL", parity="nullip", is_induction=True)
    >>> store.put_encounter(enc)
    >>> events = store.list_events(enc.id)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from laborcurve.config import PATHS, PredictorSettings, SettingsError
from laborcurve.data.records import (
    Encounter,
    EncounterStatus,
    Event,
    RecordError,
    event_from_dict,
    event_to_dict,
    new_id,
    sort_events,
)
from laborcurve.utils.formatting import fmt_date
from laborcurve.utils.numeric import utc_now

# Configure module logger
logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class LogbookError(Exception):
    """Base exception for logbook store errors."""
    pass


class EncounterNotFoundError(LogbookError):
    """Raised when a requested encounter does not exist."""
    pass


class InvalidImportError(LogbookError):
    """Raised when an import payload is not a logbook export."""
    pass


@dataclass
class ImportReport:
    """
    Outcome of ``LogbookStore.import_all``.

    Attributes:
        encounters: Encounters written.
        events: Events written.
        skipped: Rows rejected as malformed.
        settings: Whether settings were written.
    """

    encounters: int = 0
    events: int = 0
    skipped: int = 0
    settings: bool = False


class LogbookStore:
    """
    JSON-file backed logbook.

    Three collections are kept: encounters (keyed by id), events (keyed by
    id, looked up by encounter) and a single settings entry. Every mutation
    is written through to disk. With ``path=None`` the store lives only in
    memory.

    Attributes:
        path: Location of the logbook file, or None.

    Raises:
        LogbookError: If an existing file cannot be parsed.
    """

    def __init__(self, path: Optional[Union[str, Path]] = PATHS.LOGBOOK_PATH) -> None:
        self.path = Path(path) if path is not None else None
        self._encounters: Dict[str, Encounter] = {}
        self._events: Dict[str, Event] = {}
        self._settings: Optional[Dict[str, Any]] = None
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise LogbookError(f"Cannot read logbook {self.path}: {e}") from e

        self._settings = raw.get("settings")
        try:
            for row in raw.get("encounters", []):
                enc = Encounter.from_dict(row)
                self._encounters[enc.id] = enc
            for row in raw.get("events", []):
                evt = event_from_dict(row)
                self._events[evt.id] = evt
        except RecordError as e:
            raise LogbookError(f"Corrupt logbook {self.path}: {e}") from e
        logger.info(
            f"Loaded logbook {self.path}: {len(self._encounters)} encounters, "
            f"{len(self._events)} events"
        )

    def save(self) -> None:
        """Write the logbook to disk (no-op for in-memory stores)."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": FORMAT_VERSION,
            "settings": self._settings,
            "encounters": [e.to_dict() for e in self._encounters.values()],
            "events": [event_to_dict(e) for e in self._events.values()],
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug(f"Saved logbook to {self.path}")

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> PredictorSettings:
        """
        Stored settings merged over the defaults.

        Falls back to the defaults (with a warning) if the stored bundle
        violates its invariants.
        """
        try:
            return PredictorSettings.from_dict(self._settings)
        except SettingsError as e:
            logger.warning(f"Stored settings rejected, using defaults: {e}")
            return PredictorSettings()

    def put_settings(self, settings: PredictorSettings) -> None:
        self._settings = settings.to_dict()
        self.save()

    # ------------------------------------------------------------------
    # Encounters
    # ------------------------------------------------------------------

    def list_encounters(
        self,
        status: Optional[Union[EncounterStatus, str]] = None,
        query: str = "",
    ) -> List[Encounter]:
        """
        List encounters, most recently updated first.

        Args:
            status: Only encounters with this status (None or 'all' for every one).
            query: Case-insensitive substring over tags, notes and title.
        """
        wanted = None if status in (None, "all") else EncounterStatus(status)
        rows = [
            enc for enc in self._encounters.values()
            if (wanted is None or enc.status == wanted) and enc.matches(query)
        ]
        return sorted(rows, key=lambda e: e.updated_at, reverse=True)

    def get_encounter(self, encounter_id: str) -> Encounter:
        """
        Raises:
            EncounterNotFoundError: If no encounter has this id.
        """
        try:
            return self._encounters[encounter_id]
        except KeyError:
            raise EncounterNotFoundError(f"Encounter '{encounter_id}' not found") from None

    def put_encounter(self, encounter: Encounter) -> None:
        self._encounters[encounter.id] = encounter
        self.save()

    def delete_encounter(self, encounter_id: str) -> int:
        """
        Delete an encounter and all of its events.

        Returns:
            Number of events removed alongside it.
        """
        self.get_encounter(encounter_id)
        del self._encounters[encounter_id]
        doomed = [eid for eid, e in self._events.items() if e.encounter_id == encounter_id]
        for eid in doomed:
            del self._events[eid]
        self.save()
        logger.info(f"Deleted encounter {encounter_id} with {len(doomed)} events")
        return len(doomed)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def list_events(self, encounter_id: str) -> List[Event]:
        """Events of one encounter in ascending timestamp order."""
        return sort_events(e for e in self._events.values() if e.encounter_id == encounter_id)

    def put_event(self, event: Event) -> None:
        """
        Insert or replace an event and bump its encounter's ``updated_at``.

        Raises:
            EncounterNotFoundError: If the owning encounter does not exist.
        """
        encounter = self.get_encounter(event.encounter_id)
        self._events[event.id] = event
        self._encounters[encounter.id] = encounter.touched()
        self.save()

    def delete_event(self, event_id: str) -> None:
        if self._events.pop(event_id, None) is None:
            logger.warning(f"Event {event_id} not found; nothing deleted")
            return
        self.save()

    # ------------------------------------------------------------------
    # Export / Import
    # ------------------------------------------------------------------

    def dump_all(self) -> Dict[str, Any]:
        """Everything in the logbook, in the export layout."""
        return {
            "version": FORMAT_VERSION,
            "exportedAt": utc_now().isoformat().replace("+00:00", "Z"),
            "settings": self._settings,
            "encounters": [e.to_dict() for e in self.list_encounters()],
            "events": [event_to_dict(e) for e in sort_events(self._events.values())],
        }

    def export_encounter(self, encounter_id: str) -> Dict[str, Any]:
        """One encounter and its events, in the single-encounter export layout."""
        encounter = self.get_encounter(encounter_id)
        return {
            "version": FORMAT_VERSION,
            "exportedAt": utc_now().isoformat().replace("+00:00", "Z"),
            "kind": "encounter",
            "encounter": encounter.to_dict(),
            "events": [event_to_dict(e) for e in self.list_events(encounter_id)],
        }

    def import_all(self, payload: Mapping[str, Any], mode: str = "merge") -> ImportReport:
        """
        Import a full dump or a single-encounter export.

        Args:
            payload: Parsed export file.
            mode: 'merge' overwrites rows with matching ids and keeps the
                rest; 'replace' wipes the logbook first.

        Returns:
            ImportReport with counts of written and skipped rows.

        Raises:
            InvalidImportError: If the payload carries no version or the mode
                is unknown.
        """
        if not isinstance(payload, Mapping) or not payload.get("version"):
            raise InvalidImportError("Invalid import file")
        if mode not in ("merge", "replace"):
            raise InvalidImportError(f"Unknown import mode: {mode!r}")

        if mode == "replace":
            self._encounters.clear()
            self._events.clear()
            self._settings = None

        report = ImportReport()

        if payload.get("settings"):
            self._settings = dict(payload["settings"])
            report.settings = True

        encounter_rows = list(payload.get("encounters") or [])
        if payload.get("kind") == "encounter" and payload.get("encounter"):
            encounter_rows.append(payload["encounter"])

        for row in encounter_rows:
            row = dict(row)
            if not row.get("id"):
                row["id"] = new_id("enc")
            try:
                enc = Encounter.from_dict(row)
            except RecordError as e:
                logger.warning(f"Skipping encounter during import: {e}")
                report.skipped += 1
                continue
            self._encounters[enc.id] = enc
            report.encounters += 1

        for row in payload.get("events") or []:
            row = dict(row)
            if not row.get("id"):
                row["id"] = new_id("evt")
            try:
                evt = event_from_dict(row)
            except RecordError as e:
                logger.warning(f"Skipping event during import: {e}")
                report.skipped += 1
                continue
            self._events[evt.id] = evt
            report.events += 1

        self.save()
        logger.info(
            f"Imported ({mode}): {report.encounters} encounters, {report.events} events, "
            f"{report.skipped} skipped"
        )
        return report


def export_filename(encounter: Optional[Encounter] = None) -> str:
    """
    Suggested file name for an export.

    Full dumps are named by today's date; single encounters by their title
    and start date.
    """
    if encounter is None:
        return f"laborcurve_{fmt_date(utc_now(), include_year=True)}{PATHS.EXPORT_SUFFIX}"
    stem = re.sub(r"\s+", "_", encounter.title or "encounter")[:40]
    return f"enc_{stem}_{fmt_date(encounter.started_at, include_year=True)}{PATHS.EXPORT_SUFFIX}"


__all__ = [
    'LogbookError',
    'EncounterNotFoundError',
    'InvalidImportError',
    'ImportReport',
    'LogbookStore',
    'export_filename',
    'FORMAT_VERSION',
]
