"""
Access tier classification.

Admins get everything. Everyone else is bucketed by their Patreon pledge,
taken from the stored membership attributes and, when a live lookup is
available and reports a positive entitlement, from that lookup instead.
"""
import json
from typing import Any, Dict, Optional, Tuple

from multiplier_api.logger import get_logger
from multiplier_api.models import Identity
from multiplier_api.schemas import LoginStatus, Tier
from multiplier_api.services.membership import (
    PATREON_EMAIL_KEY,
    PATREON_USER_ID_KEY,
    PATREON_USER_KEY,
    PLEDGE_CENTS_KEY,
)

logger = get_logger("access")

TIER_3_CENTS = 300


def classify_tier(pledge_cents: int, is_admin: bool) -> Tier:
    if is_admin:
        return Tier.ALL_ACCESS
    if pledge_cents >= TIER_3_CENTS:
        return Tier.TIER_3_OR_HIGHER
    if pledge_cents > 0:
        return Tier.TIER_BELOW_3
    return Tier.NONE


def as_cents(value: Any) -> int:
    """Coerce a stored pledge amount to an int, treating junk as 0."""
    if isinstance(value, bool):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _nested_id(value: Any) -> Optional[str]:
    """Pull ``data.id`` out of a legacy patreon_user attribute (mapping or JSON string)."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if isinstance(value, dict) and isinstance(value.get("data"), dict):
        found = value["data"].get("id")
        return str(found) if found else None
    return None


def _member_entitlement(document: Dict[str, Any]) -> int:
    """Entitled cents of the first ``member`` relation, 0 if there is none."""
    included = document.get("included")
    if not isinstance(included, list):
        return 0
    for item in included:
        if isinstance(item, dict) and item.get("type") == "member":
            attributes = item.get("attributes")
            if not isinstance(attributes, dict):
                return 0
            return as_cents(attributes.get("currently_entitled_amount_cents"))
    return 0


class AccessClassifier:
    """Builds the login status record for a caller."""

    def __init__(self, attribute_store, membership_lookup=None):
        self.attribute_store = attribute_store
        self.membership_lookup = membership_lookup

    def _lookup(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Query the optional lookup, never letting its failures escape."""
        if self.membership_lookup is None:
            return None
        try:
            document = self.membership_lookup.get_membership(user_id)
        except Exception as e:
            logger.warning(f"Ignoring membership lookup failure for user {user_id}: {e}")
            return None
        if not isinstance(document, dict):
            return None
        data = document.get("data")
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return document

    def _stored_membership(self, user_id: int) -> Tuple[int, Optional[str], Optional[str]]:
        attributes = self.attribute_store.get_attributes(user_id)
        pledge_cents = as_cents(attributes.get(PLEDGE_CENTS_KEY))
        patreon_id = attributes.get(PATREON_USER_ID_KEY) or None
        if not patreon_id:
            patreon_id = _nested_id(attributes.get(PATREON_USER_KEY))
        email = attributes.get(PATREON_EMAIL_KEY) or None
        return pledge_cents, (str(patreon_id) if patreon_id else None), email

    def classify(self, identity: Identity) -> LoginStatus:
        status = LoginStatus(
            logged_in=identity.logged_in,
            is_admin=identity.is_admin,
            user_id=identity.user_id,
            tier=classify_tier(0, identity.is_admin),
        )
        if not identity.logged_in:
            return status

        pledge_cents, patreon_id, email = self._stored_membership(identity.user_id)

        document = self._lookup(identity.user_id)
        if document is not None:
            data = document["data"]
            status.patreon_logged_in = True
            patreon_id = str(data["id"])
            if not email and isinstance(data.get("attributes"), dict):
                email = data["attributes"].get("email") or None
            entitled = _member_entitlement(document)
            if entitled > 0:
                pledge_cents = entitled

        if pledge_cents > 0 or patreon_id:
            status.patreon_logged_in = True

        status.patreon_tier_cents = pledge_cents or None
        status.patreon_user_id = patreon_id
        status.patreon_email = email
        status.tier = classify_tier(pledge_cents, identity.is_admin)

        logger.debug(f"User {identity.user_id} classified as {status.tier.value}")
        return status
