"""
FastAPI dependencies for authentication and database access.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from supabase import create_client

from multiplier_api.auth import extract_identity_from_token
from multiplier_api.config import get_settings
from multiplier_api.crud import RecordStore
from multiplier_api.exceptions import AuthenticationError
from multiplier_api.logger import get_logger
from multiplier_api.models import Identity
from multiplier_api.services.access import AccessClassifier
from multiplier_api.services.membership import MembershipAttributeStore, PatreonMembershipLookup

logger = get_logger("dependencies")
settings = get_settings()


@lru_cache(maxsize=1)
def get_database_client():
    """Get the shared Supabase client."""
    logger.info("Creating Supabase client")
    return create_client(settings.supabase_url, settings.supabase_key)


def get_record_store(client=Depends(get_database_client)) -> RecordStore:
    return RecordStore(client, table_prefix=settings.table_prefix)


def get_attribute_store(client=Depends(get_database_client)) -> MembershipAttributeStore:
    return MembershipAttributeStore(client, table=f"{settings.table_prefix}{settings.user_meta_table}")


def get_membership_lookup(
    attribute_store: MembershipAttributeStore = Depends(get_attribute_store)
) -> Optional[PatreonMembershipLookup]:
    """The Patreon lookup when enabled, otherwise None."""
    if not settings.patreon_lookup_enabled:
        return None
    return PatreonMembershipLookup(
        attribute_store,
        api_base=settings.patreon_api_base,
        timeout=settings.patreon_timeout_seconds,
    )


def get_access_classifier(
    attribute_store: MembershipAttributeStore = Depends(get_attribute_store),
    membership_lookup: Optional[PatreonMembershipLookup] = Depends(get_membership_lookup)
) -> AccessClassifier:
    return AccessClassifier(attribute_store, membership_lookup)


def require_session(request: Request) -> Identity:
    """Validate the anti-forgery token header and resolve the caller."""
    token = request.headers.get(settings.nonce_header)
    if not token:
        logger.warning(f"Rejected {request.method} {request.url.path}: no nonce")
        raise AuthenticationError("Invalid or missing nonce")
    try:
        return extract_identity_from_token(token)
    except AuthenticationError as e:
        logger.warning(f"Rejected {request.method} {request.url.path}: {e.details}")
        raise


def resolve_owner(requested_user_id: Optional[int], identity: Identity) -> Optional[int]:
    """
    Pick the owner of a write: the body's user_id when trusted, else the session user.

    Returns None when no owner can be determined (anonymous session).
    """
    owner = identity.user_id
    if requested_user_id is not None and settings.trust_client_user_id:
        if requested_user_id != identity.user_id:
            logger.warning(
                f"Session user {identity.user_id} is writing on behalf of user {requested_user_id}"
            )
        owner = requested_user_id
    return owner or None
