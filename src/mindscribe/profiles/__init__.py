"""Profiles: the user profile document and its service."""

from mindscribe.profiles.models import UserProfile
from mindscribe.profiles.services import ProfileService

__all__ = ["ProfileService", "UserProfile"]
