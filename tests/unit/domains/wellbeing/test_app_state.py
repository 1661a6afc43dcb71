"""Tests for the launch state machine and root route projection."""

from __future__ import annotations

import pytest

from mindsense.domains.wellbeing.domain_logic.app_state import (
    ACTIVATION_STEPS,
    AppState,
    AuthSession,
    InvalidTransitionError,
    LaunchDataLoaded,
    OnboardingCompleted,
    OnboardingProgress,
    OnboardingProvider,
    OnboardingStep,
    RootRoute,
    SessionRestored,
    is_onboarding_complete,
    reduce,
    root_route,
)

SESSION = AuthSession(email="user@example.com")


def _complete() -> OnboardingProgress:
    progress = OnboardingProgress()
    for step in ACTIVATION_STEPS:
        progress.mark_complete(step)
    return progress


class TestOnboardingProgress:
    def test_empty_is_incomplete(self):
        assert not OnboardingProgress().is_fully_complete

    def test_only_activation_steps_required(self):
        progress = _complete()
        assert progress.is_fully_complete
        assert not progress.is_complete(OnboardingStep.NOTIFICATIONS)

    def test_partial_is_incomplete(self):
        progress = OnboardingProgress()
        progress.mark_complete(OnboardingStep.BASELINE)
        progress.mark_complete(OnboardingStep.CONNECT_HEALTH)
        assert not is_onboarding_complete(progress)

    def test_dict_round_trip(self):
        progress = _complete()
        assert OnboardingProgress.from_dict(progress.to_dict()) == progress

    def test_satisfies_provider_protocol(self):
        assert isinstance(OnboardingProgress(), OnboardingProvider)

    def test_required_for_activation_flag(self):
        assert OnboardingStep.FIRST_CHECK_IN.is_required_for_activation
        assert not OnboardingStep.CONNECT_HEALTH.is_required_for_activation


class TestLaunchTransitions:
    def test_no_session_is_signed_out(self):
        event = LaunchDataLoaded(session=None, onboarding=OnboardingProgress())
        assert reduce(AppState.LAUNCHING, event) is AppState.SIGNED_OUT

    def test_no_session_ignores_onboarding(self):
        event = LaunchDataLoaded(session=None, onboarding=_complete())
        assert reduce(AppState.LAUNCHING, event) is AppState.SIGNED_OUT

    def test_session_with_incomplete_onboarding(self):
        event = LaunchDataLoaded(session=SESSION, onboarding=OnboardingProgress())
        assert reduce(AppState.LAUNCHING, event) is AppState.NEEDS_ONBOARDING

    def test_session_with_complete_onboarding(self):
        event = LaunchDataLoaded(session=SESSION, onboarding=_complete())
        assert reduce(AppState.LAUNCHING, event) is AppState.READY

    def test_onboarding_completed(self):
        assert reduce(AppState.NEEDS_ONBOARDING, OnboardingCompleted()) is AppState.READY

    def test_session_restored(self):
        assert reduce(AppState.SIGNED_OUT, SessionRestored(_complete())) is AppState.READY
        assert (
            reduce(AppState.SIGNED_OUT, SessionRestored(OnboardingProgress()))
            is AppState.NEEDS_ONBOARDING
        )

    def test_deterministic(self):
        event = LaunchDataLoaded(session=SESSION, onboarding=_complete())
        results = {reduce(AppState.LAUNCHING, event) for _ in range(5)}
        assert results == {AppState.READY}


class TestInvalidTransitions:
    @pytest.mark.parametrize(
        "state,event",
        [
            (AppState.READY, LaunchDataLoaded(session=None, onboarding=OnboardingProgress())),
            (AppState.SIGNED_OUT, LaunchDataLoaded(session=None, onboarding=OnboardingProgress())),
            (AppState.LAUNCHING, OnboardingCompleted()),
            (AppState.READY, OnboardingCompleted()),
            (AppState.SIGNED_OUT, OnboardingCompleted()),
            (AppState.READY, SessionRestored(OnboardingProgress())),
            (AppState.LAUNCHING, SessionRestored(OnboardingProgress())),
        ],
    )
    def test_undefined_pairs_raise(self, state, event):
        with pytest.raises(InvalidTransitionError) as exc_info:
            reduce(state, event)
        assert exc_info.value.state is state
        assert exc_info.value.event is event
        assert state.value in str(exc_info.value)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            reduce(AppState.READY, OnboardingCompleted())


class TestRootRoute:
    def test_signed_out_without_intro(self):
        assert root_route(AppState.SIGNED_OUT, has_seen_intro=False) is RootRoute.INTRO

    def test_signed_out_after_intro(self):
        assert root_route(AppState.SIGNED_OUT, has_seen_intro=True) is RootRoute.AUTH

    @pytest.mark.parametrize(
        "state,route",
        [
            (AppState.LAUNCHING, RootRoute.LAUNCHING),
            (AppState.NEEDS_ONBOARDING, RootRoute.ONBOARDING),
            (AppState.READY, RootRoute.READY),
        ],
    )
    @pytest.mark.parametrize("seen", [True, False])
    def test_other_states_map_directly(self, state, route, seen):
        assert root_route(state, seen) is route
