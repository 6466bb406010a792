"""
Nugget Launch - Application launch and onboarding orchestration.

Components:
- PrefetchCoordinator: concurrent warm-up of remote-backed resources
- OnboardingGate: which onboarding screen (if any) to present
- ForegroundResyncHandler: lightweight resync on every app activation
- LaunchOrchestrator: the launch state machine tying it together
"""

__version__ = "1.0.0"
