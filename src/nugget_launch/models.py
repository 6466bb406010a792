"""
Nugget Launch - Data Model.

Types shared by the launch orchestrator and its collaborators:
- AuthState / LaunchPhase: the launch state machine vocabulary
- PersistedFlags / OnboardingEligibility: inputs to the onboarding gate
- Preferences: the remote user preferences document and its default
- PrefetchTaskResult: per-task outcome collected by the prefetch barrier
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


# =============================================================================
# State Machine Vocabulary
# =============================================================================


class AuthState(Enum):
    """Authentication state reported by the auth collaborator."""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class LaunchPhase(Enum):
    """Launch phases, in the order a single generation moves through them."""
    LOGIN = "login"                      # Standing state until auth arrives
    AWAITING_AUTH = "awaiting_auth"
    PREFETCHING = "prefetching"
    ONBOARDING_EVAL = "onboarding_eval"
    READY = "ready"

    @property
    def rank(self) -> int:
        return _PHASE_RANK[self]


# LOGIN and AWAITING_AUTH share a rank: both mean "no generation running"
_PHASE_RANK = {
    LaunchPhase.LOGIN: 0,
    LaunchPhase.AWAITING_AUTH: 0,
    LaunchPhase.PREFETCHING: 1,
    LaunchPhase.ONBOARDING_EVAL: 2,
    LaunchPhase.READY: 3,
}


class OnboardingDecision(Enum):
    """Which onboarding screen to present next. Derived, never persisted."""
    NONE = "none"
    TUTORIAL = "tutorial"
    BETA_WELCOME = "beta_welcome"


# =============================================================================
# Onboarding Inputs
# =============================================================================


class PersistedFlags(BaseModel):
    """
    Durable onboarding flags.

    Read at gate-evaluation time, written only when a screen is dismissed.
    Missing or unreadable flags mean "not seen", so the tutorial shows.
    """

    has_seen_tutorial: bool = False
    beta_welcome_eligible: bool = False
    beta_welcome_seen: bool = False


FLAG_NAMES = tuple(PersistedFlags.model_fields)


class OnboardingEligibility(BaseModel):
    """Eligibility inputs that are not "seen" markers."""

    beta_welcome_eligible: bool = False

    @classmethod
    def from_flags(
        cls, flags: PersistedFlags, override: bool | None = None
    ) -> "OnboardingEligibility":
        """Build eligibility from stored flags, optionally overridden by config."""
        if override is not None:
            return cls(beta_welcome_eligible=override)
        return cls(beta_welcome_eligible=flags.beta_welcome_eligible)


# =============================================================================
# Preferences
# =============================================================================


class SubscriptionTier(Enum):
    FREE = "free"
    PRO = "pro"
    ULTIMATE = "ultimate"


# "premium" was the old name for pro
_LEGACY_TIERS = {"premium": SubscriptionTier.PRO}


class Preferences(BaseModel):
    """
    User preferences document fetched at launch.

    When the fetch fails, `Preferences.default()` is used instead so the
    rest of launch can proceed unchanged.
    """

    interests: list[str] = Field(default_factory=list)
    daily_nugget_limit: int = 1
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    custom_categories: list[str] | None = None
    category_weights: dict[str, float] | None = None
    onboarding_completed: bool = False

    @field_validator("subscription_tier", mode="before")
    @classmethod
    def _coerce_tier(cls, value: Any) -> Any:
        if isinstance(value, SubscriptionTier):
            return value
        if isinstance(value, str):
            key = value.lower()
            if key in _LEGACY_TIERS:
                return _LEGACY_TIERS[key]
            try:
                return SubscriptionTier(key)
            except ValueError:
                return SubscriptionTier.FREE
        return SubscriptionTier.FREE

    @classmethod
    def default(cls) -> "Preferences":
        return cls()


# =============================================================================
# Prefetch Results
# =============================================================================


class FailureKind(Enum):
    """Coarse classification of a prefetch task failure."""
    NETWORK = "network"
    STORAGE = "storage"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PrefetchTaskResult(Generic[T]):
    """
    Outcome of one prefetch task: success(value) or failure(kind, fallback).

    `value` is always usable: it holds the fetched value on success and
    the task's fallback on failure.
    """

    value: T
    kind: FailureKind | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def success(cls, value: T) -> "PrefetchTaskResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls, kind: FailureKind, fallback: T, error: BaseException | None = None
    ) -> "PrefetchTaskResult[T]":
        return cls(value=fallback, kind=kind, error=error)
