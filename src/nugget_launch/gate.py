"""
Onboarding Gate.

Pure decision over persisted flags and eligibility. Evaluated once per
launch generation, and once more after each onboarding screen is
dismissed so a tutorial dismissal can chain straight into the beta
welcome without a second launch cycle.
"""

from nugget_launch.models import (
    OnboardingDecision,
    OnboardingEligibility,
    PersistedFlags,
)


# Flag persisted as "seen" when the screen for a decision is dismissed
DISMISSAL_FLAGS = {
    OnboardingDecision.TUTORIAL: "has_seen_tutorial",
    OnboardingDecision.BETA_WELCOME: "beta_welcome_seen",
}


def decide(
    flags: PersistedFlags, eligibility: OnboardingEligibility
) -> OnboardingDecision:
    """
    Determine which onboarding screen to present, if any.

    Precedence (first match wins):
    1. Tutorial not seen -> TUTORIAL
    2. Eligible for beta welcome and not seen -> BETA_WELCOME
    3. Otherwise -> NONE
    """
    if not flags.has_seen_tutorial:
        return OnboardingDecision.TUTORIAL

    if eligibility.beta_welcome_eligible and not flags.beta_welcome_seen:
        return OnboardingDecision.BETA_WELCOME

    return OnboardingDecision.NONE


def flag_for(decision: OnboardingDecision) -> str | None:
    """Flag to mark seen when the screen for `decision` is dismissed."""
    return DISMISSAL_FLAGS.get(decision)
