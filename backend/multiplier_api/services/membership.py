"""
Membership data sources for the access classifier.

``MembershipAttributeStore`` reads the per-user key/value attributes written
by the Patreon login integration. ``PatreonMembershipLookup`` is the optional
richer source: it asks the Patreon API for the user's identity document,
including their memberships.
"""
from typing import Any, Dict, Optional

import requests
from postgrest.exceptions import APIError

from multiplier_api.exceptions import DatabaseError, ExternalServiceError
from multiplier_api.logger import get_logger

logger = get_logger("membership")

PLEDGE_CENTS_KEY = "patreon_pledge_amount_cents"
PATREON_USER_ID_KEY = "patreon_user_id"
PATREON_USER_KEY = "patreon_user"
PATREON_EMAIL_KEY = "patreon_email"
ACCESS_TOKEN_KEY = "patreon_access_token"


class MembershipAttributeStore:
    """Per-user membership attributes stored as meta_key/meta_value rows."""

    def __init__(self, client, table: str = "multiplier_user_meta"):
        self.client = client
        self.table = table

    def get_attributes(self, user_id: int) -> Dict[str, Any]:
        """All attributes of a user; the first value wins for repeated keys."""
        try:
            response = (
                self.client.table(self.table)
                .select("meta_key, meta_value")
                .eq("user_id", user_id)
                .execute()
            )
        except APIError as e:
            logger.error(f"Failed to read membership attributes for user {user_id}: {e.message}")
            raise DatabaseError("Could not read membership attributes", e.message)

        attributes = {}
        for item in response.data or []:
            attributes.setdefault(item["meta_key"], item.get("meta_value"))
        return attributes


class PatreonMembershipLookup:
    """Fetches the Patreon identity document for a user with a stored access token."""

    IDENTITY_PARAMS = {
        "include": "memberships",
        "fields[user]": "email,full_name",
        "fields[member]": "currently_entitled_amount_cents,patron_status",
    }

    def __init__(
        self,
        attribute_store: MembershipAttributeStore,
        api_base: str = "https://www.patreon.com/api/oauth2/v2",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None
    ):
        self.attribute_store = attribute_store
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_membership(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Return the identity document, or None when the user never linked Patreon."""
        token = self.attribute_store.get_attributes(user_id).get(ACCESS_TOKEN_KEY)
        if not token:
            return None

        try:
            response = self.session.get(
                f"{self.api_base}/identity",
                params=self.IDENTITY_PARAMS,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise ExternalServiceError("Patreon identity lookup failed", str(e))
        except ValueError as e:
            raise ExternalServiceError("Patreon returned invalid JSON", str(e))
