"""
Logbook Records.

Typed, immutable records for one labor episode and its clinical events.

This module provides:
    - Encounter: Metadata for a single labor episode
    - Event kinds: CervicalExam, Rupture, Medication, Vitals, FetalStatus
    - event_from_dict / event_to_dict: Conversion to and from the logbook
      JSON layout (``{"id", "encounterId", "type", "ts", "data": {...}}``)

Events form a closed set of kinds. Code that branches on the kind should
dispatch on ``EventKind`` and fail loudly on anything it does not handle,
so a new kind cannot slip through the predictor unnoticed.

Example:
    >>> exam = CervicalExam(id="evt_1", encounter_id="enc_1",
    ...                     ts=to_utc("2025-03-05T10:00:00Z"), dilation_cm=4.0)
    >>> exam.kind
    <EventKind.SVE: 'sve'>
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Union

from laborcurve.config import Parity
from laborcurve.utils.numeric import safe_num, to_utc, utc_now

# Configure module logger
logger = logging.getLogger(__name__)


class RecordError(Exception):
    """Base exception for record errors."""
    pass


class InvalidRecordError(RecordError):
    """Raised when an encounter or event dict is malformed."""
    pass


class EventKind(str, Enum):
    """Kinds of clinical event recorded in the logbook."""

    SVE = "sve"          # sterile vaginal (cervical) exam
    ROM = "rom"          # rupture of membranes
    MED = "med"          # medication / intervention
    VITALS = "vitals"
    FETAL = "fetal"      # fetal monitoring status


class EncounterStatus(str, Enum):
    OPEN = "open"
    DELIVERED = "delivered"
    CS = "cs"


class OutcomeMode(str, Enum):
    VAGINAL = "vaginal"
    CS = "cs"
    UNKNOWN = "unknown"


def new_id(prefix: str = "id") -> str:
    """Generate a unique record id such as ``enc_3f2a...``."""
    return f"{prefix}_{uuid.uuid4()}"


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat().replace("+00:00", "Z")


def _opt_time(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return to_utc(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


# =============================================================================
# Encounter
# =============================================================================

@dataclass(frozen=True)
class Encounter:
    """
    Container for one labor episode.

    Attributes:
        id: Unique identifier (e.g., 'enc_...').
        title: Free-text title (avoid patient identifiers).
        started_at: When the encounter started.
        updated_at: Last modification time, used to order the encounter list.
        parity: 'nullip' or 'multip'.
        is_induction: Whether labor is induced.
        epidural_planned: Whether an epidural is planned.
        ga_weeks: Gestational age in weeks, if known.
        status: 'open', 'delivered' or 'cs'.
        outcome_at: Delivery time, once recorded.
        outcome_mode: 'vaginal', 'cs' or 'unknown', once recorded.
        outcome_note: Free-text outcome note.
        tags: Comma separated tags.
        notes: Free-text notes.
    """

    id: str
    title: str
    started_at: datetime
    updated_at: datetime
    parity: Parity = Parity.NULLIP
    is_induction: bool = False
    epidural_planned: bool = False
    ga_weeks: Optional[float] = None
    status: EncounterStatus = EncounterStatus.OPEN
    outcome_at: Optional[datetime] = None
    outcome_mode: Optional[OutcomeMode] = None
    outcome_note: str = ""
    tags: str = ""
    notes: str = ""

    @classmethod
    def create(
        cls,
        title: str = "",
        parity: Union[Parity, str] = Parity.NULLIP,
        started_at: Optional[datetime] = None,
        is_induction: bool = False,
        epidural_planned: bool = False,
        ga_weeks: Optional[float] = None,
        tags: str = "",
    ) -> "Encounter":
        """Start a new open encounter with a fresh id."""
        now = utc_now()
        return cls(
            id=new_id("enc"),
            title=title.strip() or "Encounter",
            started_at=to_utc(started_at) if started_at is not None else now,
            updated_at=now,
            parity=Parity(parity),
            is_induction=is_induction,
            epidural_planned=epidural_planned,
            ga_weeks=ga_weeks,
            tags=tags.strip(),
        )

    def touched(self, at: Optional[datetime] = None) -> "Encounter":
        """Return a copy with ``updated_at`` bumped."""
        return replace(self, updated_at=at or utc_now())

    def with_notes(self, notes: str, tags: str) -> "Encounter":
        return replace(self, notes=notes, tags=tags, updated_at=utc_now())

    def with_outcome(
        self,
        outcome_at: datetime,
        mode: Union[OutcomeMode, str],
        status: Union[EncounterStatus, str],
        note: str = "",
    ) -> "Encounter":
        """Return a copy carrying the delivery outcome."""
        return replace(
            self,
            outcome_at=to_utc(outcome_at),
            outcome_mode=OutcomeMode(mode),
            status=EncounterStatus(status),
            outcome_note=note.strip(),
            updated_at=utc_now(),
        )

    def matches(self, query: str) -> bool:
        """Case-insensitive search over tags, notes and title."""
        query = query.strip().lower()
        if not query:
            return True
        haystack = f"{self.tags} {self.notes} {self.title}".lower()
        return query in haystack

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "startedAt": _iso(self.started_at),
            "updatedAt": _iso(self.updated_at),
            "parity": self.parity.value,
            "gaWeeks": self.ga_weeks,
            "isInduction": self.is_induction,
            "epiduralPlanned": self.epidural_planned,
            "status": self.status.value,
            "outcomeAt": _iso(self.outcome_at),
            "outcomeMode": self.outcome_mode.value if self.outcome_mode else None,
            "outcomeNote": self.outcome_note,
            "tags": self.tags,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Encounter":
        """
        Parse an encounter from the logbook JSON layout.

        Raises:
            InvalidRecordError: If the id is missing or a field is invalid.
        """
        if not data.get("id"):
            raise InvalidRecordError("Encounter is missing an id")
        try:
            started_at = _opt_time(data.get("startedAt")) or utc_now()
            return cls(
                id=str(data["id"]),
                title=_text(data.get("title")) or "Encounter",
                started_at=started_at,
                updated_at=_opt_time(data.get("updatedAt")) or started_at,
                parity=Parity(data.get("parity") or Parity.NULLIP.value),
                is_induction=bool(data.get("isInduction", False)),
                epidural_planned=bool(data.get("epiduralPlanned", False)),
                ga_weeks=safe_num(data.get("gaWeeks")),
                status=EncounterStatus(data.get("status") or EncounterStatus.OPEN.value),
                outcome_at=_opt_time(data.get("outcomeAt")),
                outcome_mode=OutcomeMode(data["outcomeMode"]) if data.get("outcomeMode") else None,
                outcome_note=_text(data.get("outcomeNote")),
                tags=_text(data.get("tags")),
                notes=_text(data.get("notes")),
            )
        except (TypeError, ValueError) as e:
            raise InvalidRecordError(f"Invalid encounter {data.get('id')}: {e}") from e


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class BaseEvent:
    """
    Fields shared by every event kind.

    Attributes:
        id: Unique identifier (e.g., 'evt_...').
        encounter_id: Owning encounter.
        ts: When the observation was made (aware UTC).
        note: Free-text note.
    """

    kind: ClassVar[EventKind]

    id: str
    encounter_id: str
    ts: datetime
    note: str = ""


@dataclass(frozen=True)
class CervicalExam(BaseEvent):
    """Cervical exam: dilation (cm), effacement (%), station (-5..+5), position."""

    kind: ClassVar[EventKind] = EventKind.SVE

    dilation_cm: float = 0.0
    effacement_pct: Optional[float] = None
    station: Optional[float] = None
    position: str = ""
    caput: Optional[float] = None
    molding: Optional[float] = None


@dataclass(frozen=True)
class Rupture(BaseEvent):
    """Rupture of membranes."""

    kind: ClassVar[EventKind] = EventKind.ROM

    fluid: str = ""
    meconium: bool = False


@dataclass(frozen=True)
class Medication(BaseEvent):
    """Medication or intervention (epidural, oxytocin, ripening agents)."""

    kind: ClassVar[EventKind] = EventKind.MED

    med_name: str = ""
    rate: str = ""

    @property
    def normalized_name(self) -> str:
        return self.med_name.strip().lower()


@dataclass(frozen=True)
class Vitals(BaseEvent):
    kind: ClassVar[EventKind] = EventKind.VITALS

    temp_c: Optional[float] = None
    hr: Optional[float] = None
    sbp: Optional[float] = None
    dbp: Optional[float] = None


@dataclass(frozen=True)
class FetalStatus(BaseEvent):
    """Fetal monitoring category (I/II/III) and recurrent decelerations."""

    kind: ClassVar[EventKind] = EventKind.FETAL

    category: str = ""
    recurrent_decels: bool = False


Event = Union[CervicalExam, Rupture, Medication, Vitals, FetalStatus]

EVENT_TYPES: Dict[EventKind, type] = {
    EventKind.SVE: CervicalExam,
    EventKind.ROM: Rupture,
    EventKind.MED: Medication,
    EventKind.VITALS: Vitals,
    EventKind.FETAL: FetalStatus,
}


def _event_payload(kind: EventKind, data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map the JSON ``data`` block of one event kind to dataclass fields."""
    if kind is EventKind.SVE:
        dilation = safe_num(data.get("dilationCm"))
        if dilation is None:
            raise InvalidRecordError("Cervical exam requires a numeric dilationCm")
        return {
            "dilation_cm": dilation,
            "effacement_pct": safe_num(data.get("effacementPct")),
            "station": safe_num(data.get("station")),
            "position": _text(data.get("position")),
            "caput": safe_num(data.get("caput")),
            "molding": safe_num(data.get("molding")),
        }
    if kind is EventKind.ROM:
        return {"fluid": _text(data.get("fluid")), "meconium": bool(data.get("meconium", False))}
    if kind is EventKind.MED:
        return {"med_name": _text(data.get("medName")), "rate": _text(data.get("rate"))}
    if kind is EventKind.VITALS:
        return {
            "temp_c": safe_num(data.get("tempC")),
            "hr": safe_num(data.get("hr")),
            "sbp": safe_num(data.get("sbp")),
            "dbp": safe_num(data.get("dbp")),
        }
    if kind is EventKind.FETAL:
        return {
            "category": _text(data.get("category")),
            "recurrent_decels": bool(data.get("recurrentDecels", False)),
        }
    raise TypeError(f"Unhandled event kind: {kind!r}")


def event_from_dict(data: Mapping[str, Any]) -> Event:
    """
    Parse one event from the logbook JSON layout.

    Args:
        data: Mapping with ``id``, ``encounterId``, ``type``, ``ts`` and a
            kind-specific ``data`` block.

    Returns:
        The typed event.

    Raises:
        InvalidRecordError: On an unknown type, a bad timestamp, or a cervical
            exam without a numeric dilation.
    """
    try:
        kind = EventKind(data.get("type"))
    except ValueError as e:
        raise InvalidRecordError(f"Unknown event type: {data.get('type')!r}") from e

    try:
        ts = to_utc(data.get("ts"))
    except (TypeError, ValueError) as e:
        raise InvalidRecordError(f"Invalid timestamp on event {data.get('id')}: {e}") from e

    body = data.get("data") or {}
    cls = EVENT_TYPES[kind]
    return cls(
        id=str(data.get("id") or new_id("evt")),
        encounter_id=str(data.get("encounterId") or ""),
        ts=ts,
        note=_text(body.get("note")),
        **_event_payload(kind, body),
    )


def event_to_dict(event: Event) -> Dict[str, Any]:
    """Serialize an event to the logbook JSON layout."""
    if isinstance(event, CervicalExam):
        body = {
            "dilationCm": event.dilation_cm,
            "effacementPct": event.effacement_pct,
            "station": event.station,
            "position": event.position,
            "caput": event.caput,
            "molding": event.molding,
        }
    elif isinstance(event, Rupture):
        body = {"fluid": event.fluid, "meconium": event.meconium}
    elif isinstance(event, Medication):
        body = {"medName": event.med_name, "rate": event.rate}
    elif isinstance(event, Vitals):
        body = {"tempC": event.temp_c, "hr": event.hr, "sbp": event.sbp, "dbp": event.dbp}
    elif isinstance(event, FetalStatus):
        body = {"category": event.category, "recurrentDecels": event.recurrent_decels}
    else:
        raise TypeError(f"Unhandled event type: {type(event).__name__}")

    body["note"] = event.note
    return {
        "id": event.id,
        "encounterId": event.encounter_id,
        "type": event.kind.value,
        "ts": _iso(event.ts),
        "data": body,
    }


def sort_events(events) -> list:
    """Return events in ascending timestamp order (stable for ties)."""
    return sorted(events, key=lambda e: e.ts)


__all__ = [
    'RecordError',
    'InvalidRecordError',
    'EventKind',
    'EncounterStatus',
    'OutcomeMode',
    'Encounter',
    'BaseEvent',
    'CervicalExam',
    'Rupture',
    'Medication',
    'Vitals',
    'FetalStatus',
    'Event',
    'EVENT_TYPES',
    'new_id',
    'event_from_dict',
    'event_to_dict',
    'sort_events',
]
