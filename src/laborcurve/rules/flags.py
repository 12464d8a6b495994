"""
Clinical Flag Extraction Module.

Derives the four conditions that adjust the dilation-rate priors from the
event log:

    - epidural: any medication named "epidural"
    - induction: any cervical-ripening agent or mechanical device
      (misoprostol, cervidil/dinoprostone, Foley/Cook balloon)
    - op: any cervical exam recording an occiput-posterior or
      occiput-transverse position
    - oxytocin_recent: the latest oxytocin entry falls within 90 minutes of
      the reference instant

The last flag depends on *when* the question is asked, not just on the log.
The reference instant is therefore an explicit argument; it defaults to the
current time only when the caller does not supply one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from laborcurve.config import ENGINE
from laborcurve.data.records import (
    CervicalExam,
    Encounter,
    Event,
    FetalStatus,
    Medication,
    Rupture,
    Vitals,
)
from laborcurve.utils.numeric import to_utc, utc_now

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaborFlags:
    """
    Conditions resolved for one prediction.

    Attributes:
        epidural: Epidural given (or planned, once merged with the encounter).
        induction: Induction agent or device used (or induction encounter).
        op: Occiput-posterior/transverse position recorded.
        oxytocin_recent: Oxytocin titrated within the recent window.
    """

    epidural: bool = False
    induction: bool = False
    op: bool = False
    oxytocin_recent: bool = False

    def merged_with(self, encounter: Optional[Encounter]) -> "LaborFlags":
        """Fold in the encounter's own induction / epidural-planned flags."""
        if encounter is None:
            return self
        return LaborFlags(
            epidural=self.epidural or encounter.epidural_planned,
            induction=self.induction or encounter.is_induction,
            op=self.op,
            oxytocin_recent=self.oxytocin_recent,
        )

    def to_dict(self) -> dict:
        return {
            "epidural": self.epidural,
            "induction": self.induction,
            "op": self.op,
            "oxyRecent": self.oxytocin_recent,
        }


def extract_flags(events: Iterable[Event], now: Optional[datetime] = None) -> LaborFlags:
    """
    Extract rate-adjusting conditions from the event log.

    Args:
        events: Events of one encounter, in any order.
        now: Reference instant for the oxytocin window (default: current time).

    Returns:
        LaborFlags derived from events alone.

    Raises:
        TypeError: If an event is not one of the known kinds.

    Example:
        >>> flags = extract_flags(events, now=datetime(2025, 3, 5, 12, tzinfo=timezone.utc))
        >>> flags.epidural
        True
    """
    now = to_utc(now) if now is not None else utc_now()

    epidural = False
    induction = False
    op = False
    last_oxytocin: Optional[datetime] = None

    for event in events:
        if isinstance(event, Medication):
            name = event.normalized_name
            if name in ENGINE.EPIDURAL_NAMES:
                epidural = True
            elif name in ENGINE.INDUCTION_NAMES:
                induction = True
            elif name in ENGINE.OXYTOCIN_NAMES:
                if last_oxytocin is None or event.ts >= last_oxytocin:
                    last_oxytocin = event.ts
        elif isinstance(event, CervicalExam):
            if event.position.strip().lower() in ENGINE.OP_POSITIONS:
                op = True
        elif isinstance(event, (Rupture, Vitals, FetalStatus)):
            continue
        else:
            raise TypeError(f"Unhandled event type: {type(event).__name__}")

    oxytocin_recent = False
    if last_oxytocin is not None:
        minutes_since = (now - last_oxytocin).total_seconds() / 60.0
        oxytocin_recent = minutes_since <= ENGINE.OXYTOCIN_RECENT_MINUTES
        logger.debug(f"Last oxytocin {minutes_since:.0f} min before reference instant")

    return LaborFlags(
        epidural=epidural,
        induction=induction,
        op=op,
        oxytocin_recent=oxytocin_recent,
    )


__all__ = ['LaborFlags', 'extract_flags']
