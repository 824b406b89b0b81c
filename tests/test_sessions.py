"""
Tests for session candidates, ranking and the session resolver.

The ranking engine is pure, so most tests build candidates directly and pass
a fixed ``now``. The resolver tests use an AsyncMock client.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from jellyfin_mcp.errors import (
    AmbiguousSessionError,
    NoActivePlayerError,
    SessionNotFoundError,
    SessionSelectionError,
)
from jellyfin_mcp.sessions import (
    SessionCandidate,
    SessionResolver,
    SessionStrategy,
    parse_timestamp,
    rank_sessions,
    resolve_session,
    score_session,
)
from jellyfin_mcp.sessions.ranking import recency_bonus

NOW = datetime(2026, 2, 17, 18, 0, 0, tzinfo=timezone.utc)


def ago(**kwargs: float) -> datetime:
    return NOW - timedelta(**kwargs)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def active_session() -> SessionCandidate:
    """Playing, unpaused, active 90 seconds ago."""
    return SessionCandidate(
        id="s1",
        device_name="Living Room TV",
        device_id="tv-livingroom",
        client="Jellyfin Android TV",
        has_now_playing=True,
        now_playing="WALL·E",
        is_paused=False,
        last_activity=ago(seconds=90),
    )


@pytest.fixture
def idle_session() -> SessionCandidate:
    """Nothing playing, active 20 minutes ago."""
    return SessionCandidate(
        id="s2",
        device_name="Bedroom Laptop",
        device_id="laptop-01",
        client="Jellyfin Web",
        last_activity=ago(minutes=20),
    )


# =============================================================================
# SessionCandidate
# =============================================================================


class TestSessionCandidate:
    """Tests for building candidates from API data."""

    def test_from_api(self) -> None:
        candidate = SessionCandidate.from_api(
            {
                "Id": "abc",
                "DeviceName": "Kitchen",
                "DeviceId": "dev-1",
                "Client": "Jellyfin Web",
                "UserName": "alice",
                "SupportsRemoteControl": True,
                "NowPlayingItem": {"Name": "Up", "Id": "item-1"},
                "PlayState": {"IsPaused": True},
                "LastActivityDate": "2026-02-17T17:58:30.1234567Z",
            }
        )

        assert candidate.id == "abc"
        assert candidate.device_name == "Kitchen"
        assert candidate.has_now_playing
        assert candidate.now_playing == "Up"
        assert candidate.is_paused
        assert not candidate.is_playing
        assert candidate.last_activity == datetime(2026, 2, 17, 17, 58, 30, 123456, tzinfo=timezone.utc)

    def test_from_api_minimal(self) -> None:
        candidate = SessionCandidate.from_api({})

        assert candidate.id is None
        assert candidate.supports_remote_control is None
        assert candidate.is_controllable
        assert not candidate.has_now_playing
        assert candidate.last_activity is None

    def test_remote_control_false(self) -> None:
        assert not SessionCandidate.from_api({"Id": "x", "SupportsRemoteControl": False}).is_controllable

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2026-02-17T17:58:30Z", datetime(2026, 2, 17, 17, 58, 30, tzinfo=timezone.utc)),
            ("2026-02-17T17:58:30", datetime(2026, 2, 17, 17, 58, 30, tzinfo=timezone.utc)),
            ("2026-02-17T18:58:30+01:00", datetime(2026, 2, 17, 17, 58, 30, tzinfo=timezone.utc)),
            ("yesterday", None),
            ("", None),
            (None, None),
            (12345, None),
        ],
    )
    def test_parse_timestamp(self, value, expected) -> None:
        assert parse_timestamp(value) == expected


# =============================================================================
# Scoring
# =============================================================================


class TestScoring:
    """Tests for score_session."""

    def test_active_session_score(self, active_session: SessionCandidate) -> None:
        # remote 20 + playing 25 + unpaused 20 + recent 20
        assert score_session(active_session, strategy=SessionStrategy.ACTIVE, now=NOW) == 85

    def test_idle_session_score(self, idle_session: SessionCandidate) -> None:
        # remote 20 + recency (<= 30 min) 10
        assert score_session(idle_session, strategy=SessionStrategy.ACTIVE, now=NOW) == 30

    def test_paused_gets_no_unpaused_bonus(self) -> None:
        candidate = SessionCandidate(id="p", has_now_playing=True, is_paused=True)

        assert score_session(candidate, strategy=SessionStrategy.ACTIVE, now=NOW) == 45

    def test_not_controllable(self) -> None:
        candidate = SessionCandidate(id="n", supports_remote_control=False)

        assert score_session(candidate, strategy=SessionStrategy.ACTIVE, now=NOW) == 0

    @pytest.mark.parametrize(
        ("age_minutes", "bonus"),
        [(0, 20), (5, 20), (6, 10), (30, 10), (31, 5), (120, 5), (121, 0)],
    )
    def test_recency_tiers(self, age_minutes: float, bonus: int) -> None:
        assert recency_bonus(ago(minutes=age_minutes), NOW) == bonus

    def test_recency_unknown(self) -> None:
        assert recency_bonus(None, NOW) == 0

    def test_device_hint_matches_name_or_id(self, idle_session: SessionCandidate) -> None:
        by_name = score_session(idle_session, strategy=SessionStrategy.ACTIVE, now=NOW, device_hint="BEDROOM")
        by_id = score_session(idle_session, strategy=SessionStrategy.ACTIVE, now=NOW, device_hint="laptop")
        miss = score_session(idle_session, strategy=SessionStrategy.ACTIVE, now=NOW, device_hint="kitchen")

        assert by_name == 70
        assert by_id == 70
        assert miss == 30

    def test_strategy_nudges(self, idle_session: SessionCandidate) -> None:
        assert score_session(idle_session, strategy=SessionStrategy.RECENT, now=NOW) == 35
        assert score_session(idle_session, strategy=SessionStrategy.DEVICE, now=NOW) == 30
        assert score_session(idle_session, strategy=SessionStrategy.DEVICE, now=NOW, device_hint="zzz") == 38


# =============================================================================
# Selection
# =============================================================================


class TestResolveSession:
    """Tests for resolve_session."""

    def test_active_beats_idle(self, active_session: SessionCandidate, idle_session: SessionCandidate) -> None:
        selection = resolve_session([idle_session, active_session], strategy="active", now=NOW)

        assert selection.session_id == "s1"
        assert selection.method == "auto"
        assert selection.score == 85
        assert selection.label == "Living Room TV"

    def test_tie_under_ask_is_ambiguous(self) -> None:
        first = SessionCandidate(id="a", device_name="A")
        second = SessionCandidate(id="b", device_name="B")

        with pytest.raises(AmbiguousSessionError) as exc_info:
            resolve_session([first, second], strategy=SessionStrategy.ASK, now=NOW)

        choices = exc_info.value.choices
        assert [choice.session_id for choice in choices] == ["a", "b"]
        assert choices[0].score == choices[1].score

    def test_clear_winner_under_ask(self, active_session: SessionCandidate, idle_session: SessionCandidate) -> None:
        selection = resolve_session([idle_session, active_session], strategy=SessionStrategy.ASK, now=NOW)

        assert selection.session_id == "s1"

    def test_ambiguous_choices_capped(self) -> None:
        candidates = [SessionCandidate(id=f"s{index}") for index in range(8)]

        with pytest.raises(AmbiguousSessionError) as exc_info:
            resolve_session(candidates, strategy=SessionStrategy.ASK, now=NOW)

        assert len(exc_info.value.choices) == 5

    def test_tie_under_active_picks_first_listed(self) -> None:
        first = SessionCandidate(id="a")
        second = SessionCandidate(id="b")

        assert resolve_session([first, second], strategy=SessionStrategy.ACTIVE, now=NOW).session_id == "a"
        assert resolve_session([second, first], strategy=SessionStrategy.ACTIVE, now=NOW).session_id == "b"

    def test_empty_is_not_found(self) -> None:
        with pytest.raises(SessionNotFoundError):
            resolve_session([], strategy=SessionStrategy.ACTIVE, now=NOW)

    def test_explicit_id_bypasses_ranking(self) -> None:
        selection = resolve_session([], strategy=SessionStrategy.ASK, now=NOW, explicit_id="X")

        assert selection.session_id == "X"
        assert selection.method == "explicit"
        assert selection.score is None

    def test_explicit_id_skips_active_player_check(self, idle_session: SessionCandidate) -> None:
        selection = resolve_session(
            [idle_session], strategy=SessionStrategy.ACTIVE, now=NOW, explicit_id="s2", require_active_player=True
        )

        assert selection.session_id == "s2"

    def test_top_candidate_without_id(self) -> None:
        with pytest.raises(SessionSelectionError):
            resolve_session([SessionCandidate(id=None)], strategy=SessionStrategy.ACTIVE, now=NOW)

    def test_require_active_player(self, idle_session: SessionCandidate) -> None:
        with pytest.raises(NoActivePlayerError) as exc_info:
            resolve_session([idle_session], strategy=SessionStrategy.ACTIVE, now=NOW, require_active_player=True)

        assert exc_info.value.to_payload()["code"] == "NO_ACTIVE_PLAYER"

    def test_device_hint_changes_winner(
        self, active_session: SessionCandidate, idle_session: SessionCandidate
    ) -> None:
        # idle 30 + hint 40 + device 8 = 78 vs active 85 + device 8 = 93
        selection = resolve_session(
            [active_session, idle_session], strategy=SessionStrategy.DEVICE, now=NOW, device_hint="bedroom"
        )
        assert selection.session_id == "s1"

        stale = SessionCandidate(id="s3", has_now_playing=True, is_paused=True, last_activity=ago(hours=5))
        selection = resolve_session(
            [stale, idle_session], strategy=SessionStrategy.DEVICE, now=NOW, device_hint="bedroom"
        )
        assert selection.session_id == "s2"

    def test_deterministic(self, active_session: SessionCandidate, idle_session: SessionCandidate) -> None:
        candidates = [idle_session, active_session]
        first = rank_sessions(candidates, strategy=SessionStrategy.RECENT, now=NOW)

        for _ in range(5):
            assert rank_sessions(candidates, strategy=SessionStrategy.RECENT, now=NOW) == first


class TestSessionStrategy:
    """Tests for strategy parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("active", SessionStrategy.ACTIVE),
            ("Recent", SessionStrategy.RECENT),
            (" device ", SessionStrategy.DEVICE),
            ("ask", SessionStrategy.ASK),
            ("bogus", SessionStrategy.ACTIVE),
            (None, SessionStrategy.ACTIVE),
            ("", SessionStrategy.ACTIVE),
            (SessionStrategy.ASK, SessionStrategy.ASK),
        ],
    )
    def test_parse(self, value, expected: SessionStrategy) -> None:
        assert SessionStrategy.parse(value) is expected


# =============================================================================
# SessionResolver
# =============================================================================


@pytest.fixture
def client() -> MagicMock:
    """Create a mock Jellyfin client."""
    client = MagicMock()
    client.list_sessions = AsyncMock(
        return_value=[
            {
                "Id": "web-1",
                "DeviceName": "Firefox",
                "DeviceId": "browser-abc",
                "LastActivityDate": (NOW - timedelta(minutes=40)).isoformat(),
            },
            {
                "Id": "tv-1",
                "DeviceName": "Living Room TV",
                "DeviceId": "tv-livingroom",
                "NowPlayingItem": {"Name": "Up"},
                "PlayState": {"IsPaused": False},
                "LastActivityDate": (NOW - timedelta(seconds=30)).isoformat(),
            },
        ]
    )
    return client


class TestSessionResolver:
    """Tests for SessionResolver."""

    @pytest.mark.asyncio
    async def test_resolves_best_session(self, client: MagicMock) -> None:
        resolver = SessionResolver(client, clock=lambda: NOW)

        selection = await resolver.resolve()

        assert selection.session_id == "tv-1"
        assert selection.label == "Living Room TV"
        client.list_sessions.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_explicit_id_does_not_fetch(self, client: MagicMock) -> None:
        resolver = SessionResolver(client, clock=lambda: NOW)

        selection = await resolver.resolve(session_id="manual")

        assert selection.session_id == "manual"
        assert selection.method == "explicit"
        client.list_sessions.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_configured_hint(self, client: MagicMock) -> None:
        # web-1: 20 + 5 (<= 120 min) + 40 hint + 8 device = 73 vs tv-1: 85 + 8 = 93
        resolver = SessionResolver(client, strategy="device", device_id_hint="browser", clock=lambda: NOW)
        assert (await resolver.resolve()).session_id == "tv-1"

    @pytest.mark.asyncio
    async def test_call_hint_overrides_configured(self, client: MagicMock) -> None:
        del client.list_sessions.return_value[1]["NowPlayingItem"]
        resolver = SessionResolver(client, strategy="device", device_id_hint="tv", clock=lambda: NOW)

        # web-1: 20 + 5 + 40 + 8 = 73 vs tv-1: 20 + 20 recency + 8 = 48
        selection = await resolver.resolve(device_hint="firefox")

        assert selection.session_id == "web-1"

    @pytest.mark.asyncio
    async def test_unexpected_payload(self, client: MagicMock) -> None:
        client.list_sessions.return_value = {"raw": "nope"}
        resolver = SessionResolver(client, clock=lambda: NOW)

        with pytest.raises(SessionNotFoundError):
            await resolver.resolve()
