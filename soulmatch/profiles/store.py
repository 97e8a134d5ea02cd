"""
Collaborator contracts: profile storage and candidate discovery.

The matching core never performs I/O itself. Callers provide a
ProfileStore (id -> Profile) and a DiscoveryService (user + hard filters
-> bounded candidate id list). In-memory implementations are provided for
local runs and tests.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import ProfileNotFoundError
from .schema import PartnerPreferences, Profile

logger = logging.getLogger(__name__)


class ProfileStore(ABC):
    """Source of profiles and partner preferences."""

    @abstractmethod
    def get_profile(self, user_id: str) -> Profile:
        """
        Fetch a profile.

        Raises:
            ProfileNotFoundError: If the id is unknown
        """

    @abstractmethod
    def get_preferences(self, user_id: str) -> Optional[PartnerPreferences]:
        """Fetch partner preferences, or None if the user has none."""

    def get_profiles(self, user_ids: Iterable[str]) -> Tuple[List[Profile], List[str]]:
        """
        Fetch several profiles.

        Returns:
            (found profiles in input order, missing ids)
        """
        found, missing = [], []
        for user_id in user_ids:
            try:
                found.append(self.get_profile(user_id))
            except ProfileNotFoundError:
                missing.append(user_id)
        return found, missing


class InMemoryProfileStore(ProfileStore):
    """Thread-safe dictionary-backed ProfileStore."""

    def __init__(self, profiles: Optional[Iterable[Profile]] = None,
                 preferences: Optional[Iterable[PartnerPreferences]] = None):
        self._profiles: Dict[str, Profile] = {}
        self._preferences: Dict[str, PartnerPreferences] = {}
        self._lock = threading.Lock()
        for profile in profiles or []:
            self.add_profile(profile)
        for prefs in preferences or []:
            self.set_preferences(prefs)

    def add_profile(self, profile: Profile) -> None:
        with self._lock:
            self._profiles[profile.user_id] = profile

    def set_preferences(self, preferences: PartnerPreferences) -> None:
        with self._lock:
            self._preferences[preferences.user_id] = preferences

    def get_profile(self, user_id: str) -> Profile:
        with self._lock:
            profile = self._profiles.get(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile not found: {user_id}", context={"user_id": user_id})
        return profile

    def get_preferences(self, user_id: str) -> Optional[PartnerPreferences]:
        with self._lock:
            return self._preferences.get(user_id)

    def user_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._profiles)

    def __len__(self) -> int:
        with self._lock:
            return len(self._profiles)


@dataclass(frozen=True)
class HardFilters:
    """
    Coarse filters passed to the discovery service.

    Attributes:
        age_range: Optional (min, max) candidate age
        genders: Acceptable gender identities (empty means any)
        limit: Maximum number of candidate ids returned
    """
    age_range: Optional[Tuple[int, int]] = None
    genders: Tuple[str, ...] = ()
    limit: int = 1000

    @classmethod
    def from_preferences(cls, preferences: Optional[PartnerPreferences], limit: int = 1000) -> "HardFilters":
        if preferences is None:
            return cls(limit=limit)
        return cls(
            age_range=preferences.desired_age_range,
            genders=tuple(sorted(preferences.veto.interested_in_genders)),
            limit=limit
        )


class DiscoveryService(ABC):
    """Pre-filter index producing a bounded candidate id list."""

    @abstractmethod
    def find_candidates(self, user_id: str, filters: HardFilters) -> List[str]:
        """Return candidate ids for a user, at most filters.limit of them."""


class PassThroughDiscovery(DiscoveryService):
    """Discovery over every profile in an InMemoryProfileStore."""

    def __init__(self, store: InMemoryProfileStore):
        self.store = store

    def find_candidates(self, user_id: str, filters: HardFilters) -> List[str]:
        ids = []
        for candidate_id in self.store.user_ids():
            if candidate_id == user_id:
                continue
            facts = self.store.get_profile(candidate_id).facts
            if filters.age_range and facts.age is not None:
                low, high = filters.age_range
                if not low <= facts.age <= high:
                    continue
            if filters.genders and facts.gender_identity:
                if facts.gender_identity.lower() not in filters.genders:
                    continue
            ids.append(candidate_id)
            if len(ids) >= filters.limit:
                break
        logger.debug(f"Discovery returned {len(ids)} candidate(s) for {user_id}")
        return ids
