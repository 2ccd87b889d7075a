"""In-memory user profiles (display name and preferred provider)."""

from dataclasses import dataclass
from typing import Dict, Optional

from ..helpers import info_log


@dataclass
class UserProfile:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    ai_provider: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "aiProvider": self.ai_provider,
        }


class ProfileStore:
    def __init__(self) -> None:
        self._profiles: Dict[str, UserProfile] = {}

    def get(self, user_id: str) -> UserProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            profile = UserProfile(id=user_id)
            self._profiles[user_id] = profile
        return profile

    def update(
        self,
        user_id: str,
        name: Optional[str] = None,
        ai_provider: Optional[str] = None,
    ) -> UserProfile:
        """Apply the fields that were given; None leaves a field unchanged."""
        profile = self.get(user_id)
        if name:
            profile.name = name
        if ai_provider:
            profile.ai_provider = ai_provider
        info_log("[PROFILE] updated", user_id=user_id, ai_provider=profile.ai_provider)
        return profile

    def preferred_provider(self, user_id: str) -> Optional[str]:
        profile = self._profiles.get(user_id)
        return profile.ai_provider if profile else None


profile_store = ProfileStore()


def get_profile_store() -> ProfileStore:
    return profile_store
