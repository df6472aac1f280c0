"""
Frequency array, index array and preset endpoints.

GET endpoints are public. Writes and deletes need a valid session token.
Note that ``/{id}`` on the list endpoints is the owner's user id, which is
what the front end passes.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from multiplier_api.config import get_settings
from multiplier_api.crud import RecordStore
from multiplier_api.dependencies import get_record_store, require_session, resolve_owner
from multiplier_api.logger import get_logger
from multiplier_api.models import FREQ_ARRAY, INDEX_ARRAY, PRESET, Identity, RecordKind
from multiplier_api.schemas import FreqArrayCreate, IndexArrayCreate, PresetCreate

settings = get_settings()
logger = get_logger("record_routes")

router = APIRouter(tags=["records"])


def _owned_row(payload, identity: Identity) -> Dict[str, Any]:
    row = payload.model_dump()
    row["user_id"] = resolve_owner(payload.user_id, identity)
    return row


def _delete_for_caller(
    store: RecordStore,
    kind: RecordKind,
    record_id: int,
    identity: Identity
) -> Dict[str, Any]:
    if not identity.logged_in:
        logger.info(f"Anonymous session tried to delete {kind.label} {record_id}")
        return {"user_logged_in": False}
    return store.delete(kind, record_id, identity.user_id, owner_only=settings.owner_scoped_deletes)


# Frequency arrays
@router.get("/freq-arrays", response_model=List[Dict[str, Any]])
def list_freq_arrays(store: RecordStore = Depends(get_record_store)):
    """List every stored frequency array."""
    return store.list_all(FREQ_ARRAY)


@router.post("/freq-arrays", response_model=Dict[str, Any])
def save_freq_array(
    payload: FreqArrayCreate,
    identity: Identity = Depends(require_session),
    store: RecordStore = Depends(get_record_store)
):
    """Save a frequency array into its preset slot, replacing what was there."""
    return store.upsert_by_slot(FREQ_ARRAY, _owned_row(payload, identity))


@router.get("/freq-arrays/{id}", response_model=List[Dict[str, Any]])
def get_freq_arrays(id: int, store: RecordStore = Depends(get_record_store)):
    """List the frequency arrays of user ``id``."""
    return store.list_for_user(FREQ_ARRAY, id)


@router.delete("/freq-arrays/delete/{id}", response_model=Dict[str, Any])
def delete_freq_array(
    id: int,
    identity: Identity = Depends(require_session),
    store: RecordStore = Depends(get_record_store)
):
    return _delete_for_caller(store, FREQ_ARRAY, id, identity)


# Index arrays
@router.post("/index-arrays", response_model=Dict[str, Any])
def create_index_array(
    payload: IndexArrayCreate,
    identity: Identity = Depends(require_session),
    store: RecordStore = Depends(get_record_store)
):
    """Store a new index array. Index arrays are never deduplicated."""
    return store.insert(INDEX_ARRAY, _owned_row(payload, identity))


@router.get("/index-arrays/{id}", response_model=List[Dict[str, Any]])
def get_index_arrays(id: int, store: RecordStore = Depends(get_record_store)):
    return store.list_for_user(INDEX_ARRAY, id)


@router.delete("/index-arrays/delete/{id}", response_model=Dict[str, Any])
def delete_index_array(
    id: int,
    identity: Identity = Depends(require_session),
    store: RecordStore = Depends(get_record_store)
):
    return _delete_for_caller(store, INDEX_ARRAY, id, identity)


# Presets
@router.post("/presets", response_model=Dict[str, Any])
def save_preset(
    payload: PresetCreate,
    identity: Identity = Depends(require_session),
    store: RecordStore = Depends(get_record_store)
):
    """Save a preset into its slot, replacing what was there."""
    return store.upsert_by_slot(PRESET, _owned_row(payload, identity))


@router.get("/presets/{id}", response_model=List[Dict[str, Any]])
def get_presets(id: int, store: RecordStore = Depends(get_record_store)):
    return store.list_for_user(PRESET, id)


@router.delete("/presets/delete/{id}", response_model=Dict[str, Any])
def delete_preset(
    id: int,
    identity: Identity = Depends(require_session),
    store: RecordStore = Depends(get_record_store)
):
    return _delete_for_caller(store, PRESET, id, identity)
