"""Unit tests for the OpenF1 client against a mocked transport."""

import asyncio

import httpx
import pytest

from f1_tracker.openf1_client import OpenF1Client, SessionDiscoveryError

BASE_URL = "https://openf1.test/v1"

SESSION_ROW = {
    "session_key": 9523,
    "session_name": "Race",
    "session_type": "Race",
    "date_start": "2025-03-16T04:00:00+00:00",
    "date_end": "2025-03-16T06:00:00+00:00",
    "meeting_key": 1229,
}


def _resource(request: httpx.Request) -> str:
    return request.url.path.rsplit("/", 1)[-1]


def _run(handler, call):
    """Run ``call(client)`` against an OpenF1Client backed by ``handler``."""

    async def scenario():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http:
            return await call(OpenF1Client(base_url=BASE_URL, client=http))

    return asyncio.run(scenario())


@pytest.fixture
def feeds(race_payload):
    """Response body per resource name, as OpenF1 serves them."""
    return {
        "position": race_payload["positions"],
        "drivers": race_payload["drivers"],
        "laps": race_payload["laps"],
        "car_data": race_payload["car_data"],
        "stints": race_payload["stints"],
        "intervals": race_payload["intervals"],
        "track_status": race_payload["track_status"],
    }


class TestFetchSnapshot:
    """Tests for the seven-stream snapshot fetch."""

    def test_all_streams(self, feeds):
        """Every stream is requested with the session key and parsed."""
        seen = []

        def handler(request):
            seen.append((_resource(request), request.url.params.get("session_key")))
            return httpx.Response(200, json=feeds[_resource(request)])

        snapshot = _run(handler, lambda c: c.fetch_snapshot(9523))

        assert len(snapshot.positions) == 5
        assert len(snapshot.driver_details) == 3
        assert len(snapshot.laps) == 6
        assert len(snapshot.car_data) == 3
        assert len(snapshot.stints) == 4
        assert len(snapshot.intervals) == 3
        assert len(snapshot.track_status) == 2
        assert sorted(seen) == sorted((name, "9523") for name in feeds)

    def test_failed_stream_is_empty(self, feeds):
        """A failing stream yields an empty collection, others are kept."""
        def handler(request):
            if _resource(request) == "laps":
                return httpx.Response(500)
            if _resource(request) == "intervals":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=feeds[_resource(request)])

        snapshot = _run(handler, lambda c: c.fetch_snapshot(9523))

        assert snapshot is not None
        assert snapshot.laps == []
        assert snapshot.intervals == []
        assert len(snapshot.positions) == 5

    def test_every_stream_failing_gives_none(self):
        """When all seven requests fail the snapshot is missing."""
        snapshot = _run(lambda request: httpx.Response(503), lambda c: c.fetch_snapshot(9523))
        assert snapshot is None

    def test_not_found_is_empty_not_failure(self):
        """A 404 means no rows, not a failed request."""
        def handler(request):
            return httpx.Response(404, json={"detail": "No results found."})

        snapshot = _run(handler, lambda c: c.fetch_snapshot(9523))
        assert snapshot is not None
        assert snapshot.positions == []

    def test_non_list_and_bad_json_are_failures(self, feeds):
        """Non-list bodies and undecodable JSON count as failures."""
        def handler(request):
            name = _resource(request)
            if name == "position":
                return httpx.Response(200, json={"error": "rate limited"})
            if name == "drivers":
                return httpx.Response(200, content=b"<html>")
            return httpx.Response(200, json=feeds[name])

        snapshot = _run(handler, lambda c: c.fetch_snapshot(9523))
        assert snapshot.positions == []
        assert snapshot.driver_details == []
        assert len(snapshot.laps) == 6

    def test_malformed_rows_dropped(self):
        """Rows that fail validation are dropped."""
        def handler(request):
            if _resource(request) == "position":
                return httpx.Response(200, json=[{"position": 1}, {"driver_number": 1, "position": 1}])
            return httpx.Response(200, json=[])

        snapshot = _run(handler, lambda c: c.fetch_snapshot(9523))
        assert [p.driver_number for p in snapshot.positions] == [1]


class TestDiscovery:
    """Tests for session and meeting lookups."""

    def test_fetch_session(self):
        """The latest session is resolved by default."""
        def handler(request):
            assert _resource(request) == "sessions"
            assert request.url.params["session_key"] == "latest"
            return httpx.Response(200, json=[SESSION_ROW])

        session = _run(handler, lambda c: c.fetch_session())
        assert session.session_key == 9523
        assert session.is_race

    @pytest.mark.parametrize(
        "response",
        [httpx.Response(200, json=[]), httpx.Response(500), httpx.Response(404)],
    )
    def test_unresolved_session_raises(self, response):
        """No usable session raises a discovery error."""
        with pytest.raises(SessionDiscoveryError):
            _run(lambda request: response, lambda c: c.fetch_session("latest"))

    def test_fetch_meeting(self):
        """Meeting metadata is looked up by key."""
        def handler(request):
            assert request.url.params["meeting_key"] == "1229"
            return httpx.Response(200, json=[{"meeting_key": 1229, "meeting_name": "Bahrain Grand Prix"}])

        meeting = _run(handler, lambda c: c.fetch_meeting(1229))
        assert meeting.meeting_name == "Bahrain Grand Prix"

    def test_missing_meeting(self):
        """A missing meeting is not an error."""
        assert _run(lambda request: httpx.Response(200, json=[]), lambda c: c.fetch_meeting(1)) is None


class TestClientLifecycle:
    def test_borrowed_client_left_open(self):
        """A client passed in is not closed by the wrapper."""
        async def scenario():
            transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[]))
            async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http:
                async with OpenF1Client(client=http):
                    pass
                return http.is_closed

        assert asyncio.run(scenario()) is False
