"""
Change detection for the monitored bulletin.

Compares the fingerprint of freshly fetched canonical text against the last
observed BulletinState. The returned state is always meant to be persisted:
it records when the bulletin was last observed, not when it last changed.
"""

from datetime import datetime

from models.bulletin import BulletinState, ChangeDetection
from processing.fingerprint import sha256_hex


def detect_change(
    canonical_text: str, state: BulletinState | None, now: datetime
) -> ChangeDetection:
    """
    Compare canonical text against the previous state.

    With no previous state the observation is a baseline: it is reported as
    unchanged so that a fresh install does not notify anyone about a
    bulletin nobody has seen change.

    Args:
        canonical_text: Output of normalize_bulletin_text()
        state: Previously stored state, or None on the first run
        now: Observation timestamp

    Returns:
        ChangeDetection with the new state to persist
    """
    current = sha256_hex(canonical_text)
    previous = state.fingerprint if state else None

    return ChangeDetection(
        changed=previous is not None and previous != current,
        baseline=previous is None,
        previous_fingerprint=previous,
        current_fingerprint=current,
        state=BulletinState(fingerprint=current, seen_at=now),
    )
