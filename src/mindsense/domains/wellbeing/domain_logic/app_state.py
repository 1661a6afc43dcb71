"""App launch state machine and root route projection.

States: ``launching`` (initial) → ``signed_out`` | ``needs_onboarding`` |
``ready``. ``reduce`` is a pure function of (state, event). A transition that
is not defined for the current state raises ``InvalidTransitionError``; it
never invents a state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Union, runtime_checkable


class AppState(str, Enum):
    LAUNCHING = "launching"
    SIGNED_OUT = "signed_out"
    NEEDS_ONBOARDING = "needs_onboarding"
    READY = "ready"


class RootRoute(str, Enum):
    LAUNCHING = "launching"
    INTRO = "intro"
    AUTH = "auth"
    ONBOARDING = "onboarding"
    READY = "ready"


class InvalidTransitionError(ValueError):
    """Raised when an event is applied to a state that does not accept it."""

    def __init__(self, state: AppState, event: object) -> None:
        self.state = state
        self.event = event
        super().__init__(
            f"Event {type(event).__name__} is not defined from state {state.value!r}"
        )


# ---------------------------------------------------------------------------
# Session and onboarding facts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthSession:
    """Signed-in account as reported by the session provider."""

    email: str
    external_user_id: str | None = None
    display_name: str | None = None


class OnboardingStep(str, Enum):
    CONNECT_HEALTH = "connect_health"
    NOTIFICATIONS = "notifications"
    BASELINE = "baseline"
    FIRST_CHECK_IN = "first_check_in"

    @property
    def is_required_for_activation(self) -> bool:
        return self in ACTIVATION_STEPS


ACTIVATION_STEPS = (OnboardingStep.BASELINE, OnboardingStep.FIRST_CHECK_IN)


@runtime_checkable
class OnboardingProvider(Protocol):
    """Read side of the onboarding-progress collaborator."""

    def is_complete(self, step: OnboardingStep) -> bool:
        ...


@dataclass
class OnboardingProgress:
    """Completed onboarding steps for one account."""

    completed: set[OnboardingStep] = field(default_factory=set)

    def mark_complete(self, step: OnboardingStep) -> None:
        self.completed.add(step)

    def is_complete(self, step: OnboardingStep) -> bool:
        return step in self.completed

    @property
    def is_fully_complete(self) -> bool:
        return is_onboarding_complete(self)

    def to_dict(self) -> dict:
        return {"completed": sorted(step.value for step in self.completed)}

    @classmethod
    def from_dict(cls, data: dict) -> OnboardingProgress:
        return cls(completed={OnboardingStep(v) for v in data.get("completed", [])})


def is_onboarding_complete(onboarding: OnboardingProvider) -> bool:
    """True when every activation step is marked complete."""
    return all(onboarding.is_complete(step) for step in ACTIVATION_STEPS)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LaunchDataLoaded:
    session: AuthSession | None
    onboarding: OnboardingProvider


@dataclass(frozen=True)
class OnboardingCompleted:
    pass


@dataclass(frozen=True)
class SessionRestored:
    onboarding: OnboardingProvider


AppEvent = Union[LaunchDataLoaded, OnboardingCompleted, SessionRestored]


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def launch_destination(session: AuthSession | None, onboarding: OnboardingProvider) -> AppState:
    """Where a freshly loaded app lands for the given facts."""
    if session is None:
        return AppState.SIGNED_OUT
    if is_onboarding_complete(onboarding):
        return AppState.READY
    return AppState.NEEDS_ONBOARDING


def reduce(state: AppState, event: AppEvent) -> AppState:
    """Apply one event.

    - ``LaunchDataLoaded`` is accepted only from ``launching``.
    - ``OnboardingCompleted`` only from ``needs_onboarding``.
    - ``SessionRestored`` (sign-in after launch) only from ``signed_out``.

    Raises:
        InvalidTransitionError: for any other (state, event) pair.
    """
    if isinstance(event, LaunchDataLoaded) and state is AppState.LAUNCHING:
        return launch_destination(event.session, event.onboarding)

    if isinstance(event, OnboardingCompleted) and state is AppState.NEEDS_ONBOARDING:
        return AppState.READY

    if isinstance(event, SessionRestored) and state is AppState.SIGNED_OUT:
        if is_onboarding_complete(event.onboarding):
            return AppState.READY
        return AppState.NEEDS_ONBOARDING

    raise InvalidTransitionError(state, event)


def root_route(app_state: AppState, has_seen_intro: bool) -> RootRoute:
    """Project the app state onto the top-level screen."""
    if app_state is AppState.SIGNED_OUT:
        return RootRoute.AUTH if has_seen_intro else RootRoute.INTRO
    return _ROUTES[app_state]


_ROUTES = {
    AppState.LAUNCHING: RootRoute.LAUNCHING,
    AppState.NEEDS_ONBOARDING: RootRoute.ONBOARDING,
    AppState.READY: RootRoute.READY,
}
