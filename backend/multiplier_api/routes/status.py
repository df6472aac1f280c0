"""
Login and membership status endpoint.
"""
from fastapi import APIRouter, Depends

from multiplier_api.dependencies import get_access_classifier, require_session
from multiplier_api.logger import get_logger
from multiplier_api.models import Identity
from multiplier_api.schemas import LoginStatus
from multiplier_api.services.access import AccessClassifier

logger = get_logger("status_routes")
router = APIRouter(tags=["status"])


@router.get("/login-status", response_model=LoginStatus)
def get_login_status(
    identity: Identity = Depends(require_session),
    classifier: AccessClassifier = Depends(get_access_classifier)
):
    """Report whether the caller is logged in and which access tier they have."""
    status = classifier.classify(identity)
    logger.info(f"Login status for user {identity.user_id}: tier={status.tier.value}")
    return status
