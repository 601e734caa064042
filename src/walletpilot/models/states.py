"""Onboarding state machine definitions for first-run wallet import."""

from enum import Enum


class OnboardingState(str, Enum):
    """Screens of the import-from-recovery-phrase onboarding flow."""

    INIT = "INIT"
    ACCEPT_TERMS = "ACCEPT_TERMS"
    SELECT_IMPORT = "SELECT_IMPORT"
    BRANCH = "BRANCH"
    REAFFIRM_TERMS = "REAFFIRM_TERMS"
    DECLINE_METRICS = "DECLINE_METRICS"
    ENTER_SEED = "ENTER_SEED"
    CREATE_PASSWORD = "CREATE_PASSWORD"
    COMPLETE = "COMPLETE"
    DONE = "DONE"
    FAILED = "FAILED"


TERMINAL_STATES = {OnboardingState.DONE, OnboardingState.FAILED}

# Normal transitions (FAILED is always valid in addition to these)
STATE_TRANSITIONS: dict[OnboardingState, list[OnboardingState]] = {
    OnboardingState.INIT: [OnboardingState.ACCEPT_TERMS],
    OnboardingState.ACCEPT_TERMS: [OnboardingState.SELECT_IMPORT],
    OnboardingState.SELECT_IMPORT: [OnboardingState.BRANCH],
    OnboardingState.BRANCH: [
        OnboardingState.ENTER_SEED,
        OnboardingState.DECLINE_METRICS,
        OnboardingState.REAFFIRM_TERMS,
    ],
    OnboardingState.REAFFIRM_TERMS: [OnboardingState.ENTER_SEED, OnboardingState.DECLINE_METRICS],
    OnboardingState.DECLINE_METRICS: [OnboardingState.ENTER_SEED],
    OnboardingState.ENTER_SEED: [OnboardingState.CREATE_PASSWORD],
    OnboardingState.CREATE_PASSWORD: [OnboardingState.COMPLETE],
    OnboardingState.COMPLETE: [OnboardingState.DONE],
}

# Index returned by the branch-screen wait → next state.  Indices follow
# ``wallet.selectors.BRANCH_MARKERS``.
BRANCH_TARGETS: dict[int, OnboardingState] = {
    0: OnboardingState.ENTER_SEED,
    1: OnboardingState.DECLINE_METRICS,
    2: OnboardingState.REAFFIRM_TERMS,
    3: OnboardingState.REAFFIRM_TERMS,
}


def is_allowed(current: OnboardingState, new: OnboardingState) -> bool:
    """Whether *current* → *new* is a permitted transition."""
    if new is OnboardingState.FAILED:
        return current not in TERMINAL_STATES
    return new in STATE_TRANSITIONS.get(current, [])
