"""
AviationStack client for flight auto-fill.

Best effort by contract: every failure (no API key, timeout, transport
error, non-2xx status, malformed body) is logged and reported as "not
found" (None). Nothing here raises to the caller.

When FLIGHT_LOOKUP_DEMO_MODE is on, a couple of fixed flight numbers resolve
to sample data after a live lookup misses, so the UI flow can be demoed.
"""

import datetime as dt
import logging
from typing import Optional

import httpx
from fastapi import Request

from vault.errors import ExternalServiceUnavailable

logger = logging.getLogger(__name__)

# Tried in order until one returns a match
_QUERY_PARAMS = ("flight_iata", "flight_icao", "flight_number")


# ---------------------------------------------------------------------------
# Demo data, only consulted in demo mode
# ---------------------------------------------------------------------------

def _demo_flights(now: dt.datetime) -> dict[str, dict]:
    def at(hours: int) -> str:
        return (now + dt.timedelta(hours=hours)).isoformat()

    return {
        "TEST123": {
            "flight_number": "TEST123",
            "airline": "Sample Airlines",
            "departure_airport": "JFK - John F. Kennedy International",
            "arrival_airport": "LAX - Los Angeles International",
            "departure_time": at(2),
            "arrival_time": at(8),
            "gate": "A12",
            "status": "Scheduled",
        },
        "DEMO456": {
            "flight_number": "DEMO456",
            "airline": "Demo Airways",
            "departure_airport": "ORD - Chicago O'Hare International",
            "arrival_airport": "DFW - Dallas/Fort Worth International",
            "departure_time": at(1),
            "arrival_time": at(4),
            "gate": "B5",
            "status": "On Time",
        },
    }


def _extract_flight(item: dict, fallback_number: str) -> dict:
    """Flatten an AviationStack flight object into our flight fields."""
    flight = item.get("flight") or {}
    airline = item.get("airline") or {}
    departure = item.get("departure") or {}
    arrival = item.get("arrival") or {}
    return {
        "flight_number": flight.get("iata") or flight.get("icao") or fallback_number,
        "airline": airline.get("name") or "Unknown Airline",
        "departure_airport": departure.get("airport") or departure.get("iata") or "Unknown",
        "arrival_airport": arrival.get("airport") or arrival.get("iata") or "Unknown",
        "departure_time": departure.get("scheduled"),
        "arrival_time": arrival.get("scheduled"),
        "gate": departure.get("gate"),
        "status": item.get("flight_status") or "Unknown",
    }


class FlightLookup:
    def __init__(
        self,
        api_key: str = "",
        base_url: str = "http://api.aviationstack.com/v1",
        timeout: float = 10.0,
        demo_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.demo_mode = demo_mode
        # Tests pass an httpx.MockTransport here
        self._transport = transport

    async def _query(self, client: httpx.AsyncClient, param: str, flight_number: str) -> Optional[dict]:
        """One lookup request. Raises ExternalServiceUnavailable on any failure."""
        try:
            resp = await client.get(
                f"{self.base_url}/flights",
                params={"access_key": self.api_key, param: flight_number, "limit": 1},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise ExternalServiceUnavailable(f"{exc.__class__.__name__} for {param}") from exc

        if not resp.is_success:
            raise ExternalServiceUnavailable(f"HTTP {resp.status_code} for {param}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise ExternalServiceUnavailable(f"malformed body for {param}") from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        try:
            return _extract_flight(data[0], flight_number)
        except AttributeError as exc:
            raise ExternalServiceUnavailable(f"unexpected flight shape for {param}") from exc

    async def fetch(self, flight_number: str) -> Optional[dict]:
        """Return flight fields for `flight_number`, or None if it can't be resolved."""
        if not self.api_key:
            logger.warning("[aviationstack] AVIATIONSTACK_API_KEY not configured — skipping lookup")
            return None

        clean_number = flight_number.strip().upper()
        if not clean_number:
            return None

        async with httpx.AsyncClient(transport=self._transport) as client:
            for param in _QUERY_PARAMS:
                try:
                    result = await self._query(client, param, clean_number)
                except ExternalServiceUnavailable as exc:
                    logger.warning("[aviationstack] lookup failed: %s", exc.message)
                    continue
                if result:
                    return result

        logger.info("[aviationstack] no flight data for %s", clean_number)
        if self.demo_mode:
            demo = _demo_flights(dt.datetime.now(dt.timezone.utc)).get(clean_number)
            if demo:
                logger.info("[aviationstack] returning demo data for %s", clean_number)
                return demo
        return None


def get_flight_lookup(request: Request) -> FlightLookup:
    """FastAPI dependency — the lookup client the app was built with."""
    return request.app.state.flight_lookup
