"""
Session selection: candidate model, ranking engine and resolver.
"""

from jellyfin_mcp.sessions.models import SessionCandidate, parse_timestamp
from jellyfin_mcp.sessions.ranking import (
    AMBIGUITY_GAP,
    RankedSession,
    SessionSelection,
    SessionStrategy,
    rank_sessions,
    resolve_session,
    score_session,
)
from jellyfin_mcp.sessions.resolver import SessionResolver, utc_now

__all__ = [
    "AMBIGUITY_GAP",
    "RankedSession",
    "SessionCandidate",
    "SessionResolver",
    "SessionSelection",
    "SessionStrategy",
    "parse_timestamp",
    "rank_sessions",
    "resolve_session",
    "score_session",
    "utc_now",
]
