from datetime import datetime, timezone
from typing import Optional

from db.models import LegalConsent
from shop.errors import OrderValidationError


def capture_consent(
    agreed: bool, policy_version: str, when: Optional[datetime] = None
) -> LegalConsent:
    """Record that the shopper accepted the terms at order time."""
    if not agreed:
        raise OrderValidationError("terms")
    return LegalConsent(
        agreed=True,
        policy_version=policy_version,
        agreed_at=when or datetime.now(timezone.utc),
    )
