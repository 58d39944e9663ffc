"""
Idle-rotation state machine for the globe.

States:
- ROTATING: idle animation runs
- SUSPENDED_BY_USER: a live gesture paused rotation until the quiet period elapses
- SUSPENDED_BY_TRIP: the camera is focused on a trip; rotation is off regardless of gestures

Transition functions are pure: they take the current state and return the
next state plus the timer effects the controller must carry out.
"""

from dataclasses import dataclass
from enum import Enum


class RotationState(str, Enum):
    ROTATING = "rotating"
    SUSPENDED_BY_USER = "suspendedByUser"
    SUSPENDED_BY_TRIP = "suspendedByTrip"

    @property
    def userInteracted(self) -> bool:
        return self is RotationState.SUSPENDED_BY_USER

    @property
    def viewingTrip(self) -> bool:
        return self is RotationState.SUSPENDED_BY_TRIP


@dataclass(frozen=True)
class Transition:
    """Next state plus the timer effects that go with it."""
    state: RotationState
    stopRotation: bool = False
    startRotation: bool = False
    armQuietTimer: bool = False
    cancelQuietTimer: bool = False

    @property
    def changed(self) -> bool:
        return self.stopRotation or self.startRotation or self.armQuietTimer or self.cancelQuietTimer


def onUserGesture(state: RotationState) -> Transition:
    """Pointer move or tap on the surface."""
    if state is RotationState.SUSPENDED_BY_TRIP:
        return Transition(state)
    # From ROTATING this suspends; from SUSPENDED_BY_USER it re-arms (debounce)
    return Transition(RotationState.SUSPENDED_BY_USER, stopRotation=True, armQuietTimer=True)


def onQuietPeriodElapsed(state: RotationState) -> Transition:
    """The quiet timer armed by the last gesture fired."""
    if state is RotationState.SUSPENDED_BY_USER:
        return Transition(RotationState.ROTATING, startRotation=True)
    return Transition(state)


def onViewingTrip(state: RotationState, viewing: bool, restart: bool = True) -> Transition:
    """
    Enter or leave trip view.

    Entering always stops rotation and drops any pending quiet timer. Leaving
    resumes immediately (no quiet period) unless a user suspension is live;
    restart=False leaves the restart to the caller (zoom-out animation).
    """
    if viewing:
        return Transition(RotationState.SUSPENDED_BY_TRIP, stopRotation=True, cancelQuietTimer=True)
    if state is RotationState.SUSPENDED_BY_USER:
        return Transition(state)
    return Transition(RotationState.ROTATING, startRotation=restart)


def onResumeRequested(state: RotationState) -> Transition:
    """Explicit resume from the UI - only honoured when nothing suppresses rotation."""
    if state is RotationState.ROTATING:
        return Transition(state, startRotation=True)
    return Transition(state)
