"""
Session ranking and selection.

Given the sessions currently known to the server, pick the one a playback
command should go to. Scoring is additive: each signal below adds a fixed
number of points, so e.g. a recently used device that matches the device
hint can beat a long-idle session that happens to be playing.

    remote control supported (absent counts as yes)     +20
    has live content                                     +25
    live content is not paused                           +20
    device hint matches device id or name                +40
    last activity <= 5 min / <= 30 min / <= 120 min      +20 / +10 / +5
    strategy "recent"                                    +5
    strategy "device" with a non-empty hint              +8

Candidates are sorted by score, ties keep input order. Under the "ask"
strategy a gap of less than 15 points between the top two is reported as
ambiguous instead of guessing.

Everything here is a pure function of its arguments; the current time is
passed in by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from jellyfin_mcp.errors import (
    AmbiguousSessionError,
    NoActivePlayerError,
    SessionChoice,
    SessionNotFoundError,
    SessionSelectionError,
)
from jellyfin_mcp.sessions.models import SessionCandidate

logger = logging.getLogger(__name__)

SCORE_REMOTE_CONTROL = 20
SCORE_NOW_PLAYING = 25
SCORE_NOT_PAUSED = 20
SCORE_DEVICE_HINT = 40

# (max age in minutes, bonus), checked in order
RECENCY_TIERS: tuple[tuple[float, int], ...] = (
    (5, 20),
    (30, 10),
    (120, 5),
)

SCORE_RECENT_STRATEGY = 5
SCORE_DEVICE_STRATEGY = 8

AMBIGUITY_GAP = 15
MAX_CHOICES = 5


class SessionStrategy(Enum):
    """How the resolver picks a session when none is given explicitly."""

    ACTIVE = "active"
    RECENT = "recent"
    DEVICE = "device"
    ASK = "ask"

    @classmethod
    def parse(cls, value: SessionStrategy | str | None, default: SessionStrategy | None = None) -> SessionStrategy:
        """
        Convert a strategy name, falling back to ``default`` (ACTIVE) for
        unknown or missing values.
        """
        if isinstance(value, cls):
            return value
        fallback = default or cls.ACTIVE
        if not value:
            return fallback
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unknown session strategy %r, using %s", value, fallback.value)
            return fallback


@dataclass(frozen=True)
class RankedSession:
    """A candidate together with its score."""

    candidate: SessionCandidate
    score: int


@dataclass(frozen=True)
class SessionSelection:
    """
    Outcome of a successful selection.

    ``method`` is "explicit" when the caller named the session, "auto" when
    it was ranked; ``score`` and ``label`` are only set for "auto".
    """

    session_id: str
    method: str
    score: int | None = None
    label: str | None = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def recency_bonus(last_activity: datetime | None, now: datetime) -> int:
    """Points for how recently the session was active; 0 when unknown."""
    if last_activity is None:
        return 0

    age_minutes = (_as_utc(now) - _as_utc(last_activity)).total_seconds() / 60
    for max_age, bonus in RECENCY_TIERS:
        if age_minutes <= max_age:
            return bonus
    return 0


def matches_device_hint(candidate: SessionCandidate, hint: str) -> bool:
    """Case-insensitive substring match against device id or device name."""
    if not hint:
        return False
    hint = hint.lower()
    device_id = (candidate.device_id or "").lower()
    device_name = (candidate.device_name or "").lower()
    return hint in device_id or hint in device_name


def score_session(
    candidate: SessionCandidate,
    *,
    strategy: SessionStrategy,
    now: datetime,
    device_hint: str | None = None,
) -> int:
    """Compute the selection score of one candidate."""
    hint = (device_hint or "").lower()
    score = 0

    if candidate.is_controllable:
        score += SCORE_REMOTE_CONTROL
    if candidate.has_now_playing:
        score += SCORE_NOW_PLAYING
        if not candidate.is_paused:
            score += SCORE_NOT_PAUSED
    if matches_device_hint(candidate, hint):
        score += SCORE_DEVICE_HINT

    score += recency_bonus(candidate.last_activity, now)

    if strategy is SessionStrategy.RECENT:
        score += SCORE_RECENT_STRATEGY
    elif strategy is SessionStrategy.DEVICE and hint:
        score += SCORE_DEVICE_STRATEGY

    return score


def rank_sessions(
    candidates: Sequence[SessionCandidate],
    *,
    strategy: SessionStrategy,
    now: datetime,
    device_hint: str | None = None,
) -> list[RankedSession]:
    """Score all candidates and sort best first, keeping input order on ties."""
    ranked = [
        RankedSession(
            candidate=candidate,
            score=score_session(candidate, strategy=strategy, now=now, device_hint=device_hint),
        )
        for candidate in candidates
    ]
    return sorted(ranked, key=lambda entry: entry.score, reverse=True)


def _choice(entry: RankedSession) -> SessionChoice:
    candidate = entry.candidate
    return SessionChoice(
        session_id=candidate.id or "",
        device_name=candidate.device_name,
        client=candidate.client,
        now_playing=candidate.now_playing,
        score=entry.score,
    )


def resolve_session(
    candidates: Sequence[SessionCandidate],
    *,
    strategy: SessionStrategy | str,
    now: datetime,
    explicit_id: str | None = None,
    device_hint: str | None = None,
    require_active_player: bool = False,
) -> SessionSelection:
    """
    Select the session a command should target.

    An explicit id always wins and is not checked against ``candidates``.

    Raises:
        SessionNotFoundError: No candidates at all.
        SessionSelectionError: The best candidate has no id.
        AmbiguousSessionError: Strategy "ask" and the top two are within
            AMBIGUITY_GAP points.
        NoActivePlayerError: ``require_active_player`` is set and the selected
            session has no live content.
    """
    if explicit_id:
        return SessionSelection(session_id=explicit_id, method="explicit")

    if not candidates:
        raise SessionNotFoundError()

    strategy = SessionStrategy.parse(strategy)
    ranked = rank_sessions(candidates, strategy=strategy, now=now, device_hint=device_hint)

    top = ranked[0]
    if not top.candidate.id:
        raise SessionSelectionError()

    if strategy is SessionStrategy.ASK and len(ranked) > 1:
        gap = top.score - ranked[1].score
        if gap < AMBIGUITY_GAP:
            logger.info("Ambiguous session selection (gap %d < %d)", gap, AMBIGUITY_GAP)
            raise AmbiguousSessionError([_choice(entry) for entry in ranked[:MAX_CHOICES]])

    if require_active_player and not top.candidate.has_now_playing:
        raise NoActivePlayerError(top.candidate.id)

    logger.debug(
        "Selected session %s (%s) with score %d",
        top.candidate.id,
        top.candidate.device_name or "unnamed",
        top.score,
    )
    return SessionSelection(
        session_id=top.candidate.id,
        method="auto",
        score=top.score,
        label=top.candidate.device_name,
    )
