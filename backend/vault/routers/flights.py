import pydantic
from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError

from vault.auth import get_current_user_id
from vault.database import get_gateway
from vault.entities import EntityKind
from vault.errors import NotFound
from vault.gateway import PersistenceGateway
from vault.schemas import Flight, FlightIn, FlightLookupOut
from vault.services.aviationstack import FlightLookup, get_flight_lookup

router = APIRouter(prefix="/flights", tags=["flights"])


@router.get("/autofill/{flight_number}", response_model=FlightLookupOut)
async def autofill_flight(
    flight_number: str,
    _user_id: str = Depends(get_current_user_id),
    lookup: FlightLookup = Depends(get_flight_lookup),
):
    """Best-effort AviationStack lookup. Any failure is a plain 404."""
    result = await lookup.fetch(flight_number)
    if not result:
        raise NotFound("Flight not found")
    return result


@router.post("", response_model=Flight)
async def create_flight(
    payload: dict = Body(...),
    user_id: str = Depends(get_current_user_id),
    gateway: PersistenceGateway = Depends(get_gateway),
    lookup: FlightLookup = Depends(get_flight_lookup),
):
    """
    Create a flight. When only a flight number is known (no airline), the
    looked-up details fill the gaps; anything the client sent wins.
    """
    if payload.get("flight_number") and not payload.get("airline"):
        looked_up = await lookup.fetch(str(payload["flight_number"]))
        if looked_up:
            filled = {k: v for k, v in payload.items() if v not in (None, "")}
            payload = {**looked_up, **filled}

    try:
        data = FlightIn.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise RequestValidationError(exc.errors())

    collection = gateway.collection(EntityKind.FLIGHTS)
    return await run_in_threadpool(collection.create, user_id, data.model_dump())
