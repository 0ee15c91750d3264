"""
CRUD routes for the six record categories.

Every category gets the same four routes, built from its EntitySpec:

    GET    /{path}        list the caller's records, newest first
    POST   /{path}        create
    PUT    /{path}/{id}   partial update (PATCH is accepted too)
    DELETE /{path}/{id}   delete

All of them depend on get_current_user_id, so the bearer token is checked
before the gateway is touched, and every gateway call is scoped by that id.
"""

from fastapi import APIRouter, Depends

from vault.auth import get_current_user_id
from vault.database import get_gateway
from vault.entities import ENTITIES, EntityKind, EntitySpec
from vault.gateway import PersistenceGateway
from vault.schemas import MessageOut


def build_router(spec: EntitySpec, with_create: bool = True) -> APIRouter:
    router = APIRouter(prefix=spec.path, tags=[spec.kind.value])
    record_model = spec.record
    create_model = spec.create
    patch_model = spec.patch

    @router.get("", response_model=list[record_model])
    def list_records(
        user_id: str = Depends(get_current_user_id),
        gateway: PersistenceGateway = Depends(get_gateway),
    ):
        return gateway.collection(spec.kind).list(user_id)

    if with_create:
        @router.post("", response_model=record_model)
        def create_record(
            data: create_model,
            user_id: str = Depends(get_current_user_id),
            gateway: PersistenceGateway = Depends(get_gateway),
        ):
            return gateway.collection(spec.kind).create(user_id, data.model_dump())

    @router.put("/{record_id}", response_model=record_model)
    @router.patch("/{record_id}", response_model=record_model)
    def update_record(
        record_id: str,
        data: patch_model,
        user_id: str = Depends(get_current_user_id),
        gateway: PersistenceGateway = Depends(get_gateway),
    ):
        return gateway.collection(spec.kind).update(record_id, user_id, data.changes())

    @router.delete("/{record_id}", response_model=MessageOut)
    def delete_record(
        record_id: str,
        user_id: str = Depends(get_current_user_id),
        gateway: PersistenceGateway = Depends(get_gateway),
    ):
        collection = gateway.collection(spec.kind)
        if not collection.delete(record_id, user_id):
            raise collection.not_found()
        return MessageOut(message=f"{spec.noun} deleted")

    return router


# Flights define their own create route (auto-fill) in vault.routers.flights
routers = [
    build_router(spec, with_create=kind is not EntityKind.FLIGHTS)
    for kind, spec in ENTITIES.items()
]
