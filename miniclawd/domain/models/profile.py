from typing import Any, Dict
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Profile(str, Enum):
    """Power modes controlling memory, tools and prompt verbosity"""
    LOW_POWER = "LOW_POWER"
    HIGH_POWER = "HIGH_POWER"
    CHAT = "CHAT"


class HistoryPolicy(str, Enum):
    """Which part of memory a profile shows to the backend"""
    CURRENT_RUN = "current_run"
    FULL = "full"
    NONE = "none"


class ProfilePolicy(BaseModel):
    """Fixed behavior bundle attached to a profile"""
    model_config = ConfigDict(frozen=True)

    profile: Profile
    history: HistoryPolicy
    tools_enabled: bool
    uses_memory: bool


_ALIASES: Dict[str, Profile] = {
    "LOW": Profile.LOW_POWER,
    "LOW_POWER": Profile.LOW_POWER,
    "HIGH": Profile.HIGH_POWER,
    "HIGH_POWER": Profile.HIGH_POWER,
    "CHAT": Profile.CHAT,
}

_POLICIES: Dict[Profile, ProfilePolicy] = {
    Profile.LOW_POWER: ProfilePolicy(
        profile=Profile.LOW_POWER,
        history=HistoryPolicy.CURRENT_RUN,
        tools_enabled=True,
        uses_memory=True,
    ),
    Profile.HIGH_POWER: ProfilePolicy(
        profile=Profile.HIGH_POWER,
        history=HistoryPolicy.FULL,
        tools_enabled=True,
        uses_memory=True,
    ),
    Profile.CHAT: ProfilePolicy(
        profile=Profile.CHAT,
        history=HistoryPolicy.NONE,
        tools_enabled=False,
        uses_memory=False,
    ),
}


def normalize_profile(value: Any) -> Profile:
    """Map canonical names and legacy aliases to a Profile.

    Matching ignores case, surrounding whitespace and the difference between
    '-' and '_'. Anything unrecognized falls back to HIGH_POWER.
    """
    if isinstance(value, Profile):
        return value
    if not isinstance(value, str):
        return Profile.HIGH_POWER

    key = value.strip().upper().replace("-", "_")
    return _ALIASES.get(key, Profile.HIGH_POWER)


def policy_for(profile: Profile) -> ProfilePolicy:
    """Return the behavior bundle for a profile"""
    return _POLICIES[normalize_profile(profile)]
