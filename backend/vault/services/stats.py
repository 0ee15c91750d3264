"""Dashboard counters computed from a user's records."""

from vault.entities import EntityKind
from vault.gateway import PersistenceGateway
from vault.schemas import StatsOut


def country_of(destination: str) -> str:
    """'Kyoto, Japan' -> 'Japan'. The last comma-separated part is the country."""
    return destination.split(",")[-1].strip()


def compute_stats(gateway: PersistenceGateway, user_id: str) -> StatsOut:
    trips = gateway.collection(EntityKind.TRAVEL).list(user_id)
    flights = gateway.collection(EntityKind.FLIGHTS).list(user_id)
    employers = gateway.collection(EntityKind.EMPLOYERS).list(user_id)

    countries = {country_of(t.destination).casefold() for t in trips}
    countries.discard("")

    return StatsOut(
        total_trips=len(trips),
        flights_taken=len(flights),
        countries_visited=len(countries),
        career_changes=len(employers),
    )
