"""
Feature flags for users.

A feature can be switched off for a single user through
user.data["features"]; ALL=false switches off every feature. Defaults
come from settings.default_features.
"""

import enum
from typing import Optional
from collectives_backend.app.core.config import settings
from collectives_backend.app.models.user import User


class Feature(str, enum.Enum):
    ALL = "ALL"
    USE_EXPENSES = "USE_EXPENSES"


def can_use_feature(user: Optional[User], feature: Feature) -> bool:
    """
    Check whether `user` may use `feature`.
    
    Unauthenticated requests and inactive users never can.
    """
    if user is None or not user.is_active:
        return False
    
    overrides = (user.data or {}).get("features") or {}
    if overrides.get(Feature.ALL.value) is False:
        return False
    if feature.value in overrides:
        return bool(overrides[feature.value])
    
    return settings.default_features.get(feature.value, True)
