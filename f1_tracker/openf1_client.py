"""OpenF1 HTTP client: session discovery and per-cycle snapshot fetches.

Usage as a library:
    async with OpenF1Client() as client:
        session = await client.fetch_session("latest")
        snapshot = await client.fetch_snapshot(session.session_key)

A snapshot is seven independent requests issued together. Each one that
fails yields an empty collection; only when every request fails is the whole
snapshot reported as missing (``None``).
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from f1_tracker.models import (
    CarDataRecord,
    DriverDetail,
    FeedRecord,
    IntervalRecord,
    LapRecord,
    MeetingInfo,
    PositionRecord,
    SessionInfo,
    Snapshot,
    StintRecord,
    TrackStatusRecord,
    parse_records,
)
from f1_tracker.utils.config import settings

DEFAULT_BASE_URL = "https://api.openf1.org/v1"

DEFAULT_ENDPOINTS: dict[str, str] = {
    "positions": "/position",
    "driver_details": "/drivers",
    "laps": "/laps",
    "car_data": "/car_data",
    "stints": "/stints",
    "intervals": "/intervals",
    "track_status": "/track_status",
    "sessions": "/sessions",
    "meetings": "/meetings",
}

# Snapshot field -> record type, in request order
SNAPSHOT_STREAMS: dict[str, type[FeedRecord]] = {
    "positions": PositionRecord,
    "driver_details": DriverDetail,
    "laps": LapRecord,
    "car_data": CarDataRecord,
    "stints": StintRecord,
    "intervals": IntervalRecord,
    "track_status": TrackStatusRecord,
}


class SessionDiscoveryError(RuntimeError):
    """The session to track could not be resolved; nothing can be polled."""


class OpenF1Client:
    """Thin async wrapper over the public OpenF1 REST API.

    Attributes:
        base_url: API root, e.g. ``https://api.openf1.org/v1``.
        endpoints: Path per sub-stream / discovery resource.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        cfg = settings.get("openf1", {})
        self.base_url = (base_url or cfg.get("base_url") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout or cfg.get("timeout_seconds", 10)
        self.endpoints = {**DEFAULT_ENDPOINTS, **(cfg.get("endpoints") or {})}

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json", "User-Agent": "f1-live-tracker"},
        )

    async def __aenter__(self) -> OpenF1Client:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _get_json(self, path: str, params: dict[str, Any]) -> list[Any] | None:
        """GET a JSON list. None on any transport/HTTP/decoding failure."""
        try:
            response = await self._client.get(path, params=params)
            if response.status_code == 404:
                # OpenF1 answers 404 when a filter matches nothing
                return []
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Request {} failed: {}", path, exc)
            return None
        except ValueError as exc:
            logger.warning("Invalid JSON from {}: {}", path, exc)
            return None

        if not isinstance(payload, list):
            logger.warning("Unexpected payload from {}: {}", path, type(payload).__name__)
            return None
        return payload

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def fetch_session(self, session_key: int | str = "latest") -> SessionInfo:
        """Resolve a session (``"latest"`` by default).

        Raises:
            SessionDiscoveryError: If the API gives no usable session.
        """
        payload = await self._get_json(self.endpoints["sessions"], {"session_key": session_key})
        sessions = parse_records(SessionInfo, payload)
        if not sessions:
            raise SessionDiscoveryError(
                f"Could not resolve session '{session_key}' from {self.base_url}"
            )
        session = sessions[0]
        logger.info(
            "Resolved session {}: {} ({})",
            session.session_key, session.session_name, session.session_type,
        )
        return session

    async def fetch_meeting(self, meeting_key: int) -> MeetingInfo | None:
        """Meeting metadata, or None if unavailable (the title just gets shorter)."""
        payload = await self._get_json(self.endpoints["meetings"], {"meeting_key": meeting_key})
        meetings = parse_records(MeetingInfo, payload)
        if not meetings:
            logger.warning("No meeting details for meeting_key={}", meeting_key)
            return None
        return meetings[0]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def _fetch_stream(self, name: str, session_key: int) -> list[FeedRecord] | None:
        payload = await self._get_json(self.endpoints[name], {"session_key": session_key})
        if payload is None:
            return None
        return parse_records(SNAPSHOT_STREAMS[name], payload)

    async def fetch_snapshot(self, session_key: int) -> Snapshot | None:
        """Fetch all seven sub-streams concurrently.

        Returns:
            A ``Snapshot`` with an empty collection for every failed stream,
            or None if every request failed.
        """
        names = list(SNAPSHOT_STREAMS)
        results = await asyncio.gather(*(self._fetch_stream(name, session_key) for name in names))

        failed = [name for name, result in zip(names, results) if result is None]
        if len(failed) == len(names):
            logger.error("All feed requests failed for session {}", session_key)
            return None
        if failed:
            logger.warning("No data this cycle for: {}", ", ".join(failed))

        return Snapshot(**{name: result or [] for name, result in zip(names, results)})
