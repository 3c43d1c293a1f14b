"""
Gesture segmentation module for AirDoppler.

Turns the stream of bandwidth readings into discrete gestures using a
debounce window and a cooldown.
"""

import numpy as np
from enum import Enum

from .config import Config


class Gesture(Enum):
    """Gesture classification labels."""
    NOTHING = "nothing"
    PUSH = "push"
    PULL = "pull"
    TAP = "tap"
    DOUBLE_TAP = "double_tap"


class GestureState(Enum):
    """State machine states for gesture detection."""
    IDLE = "idle"
    TRACKING = "tracking"
    COOLDOWN = "cooldown"


class GestureListener:
    """
    Listener for the supported gesture types.

    Subclass and override the callbacks of interest. All callbacks run
    synchronously on the analysis thread, so they must return quickly.
    """

    def on_push(self):
        """Hand moved towards the device."""

    def on_pull(self):
        """Hand moved away from the device."""

    def on_tap(self):
        """Towards and back again."""

    def on_double_tap(self):
        """Two taps within one window."""

    def on_nothing(self):
        """No gesture this cycle."""


_CALLBACKS = {
    Gesture.PUSH: "on_push",
    Gesture.PULL: "on_pull",
    Gesture.TAP: "on_tap",
    Gesture.DOUBLE_TAP: "on_double_tap",
    Gesture.NOTHING: "on_nothing",
}


def dispatch_gesture(listener, gesture: Gesture):
    """Call the listener method matching gesture."""
    getattr(listener, _CALLBACKS[gesture])()


class GestureStateMachine:
    """
    Classifies bandwidth readings into gestures.

    - IDLE: Waiting for a reading with enough bandwidth to count as motion
    - TRACKING: A debounce window is open; direction flips are counted
      and every new flip reopens the window
    - COOLDOWN: A gesture was just emitted; readings are ignored

    When the window expires the number of direction changes picks the
    gesture: one is a push or pull (depending on the direction), two is
    a tap, three or more is a double tap.
    """

    def __init__(self, config: Config):
        self.config = config

        self._previous_direction = 0
        self._direction_changes = 0
        self._cycles_left_to_read = 0
        self._cycles_to_refresh = 0

    def update(self, left_bandwidth: int, right_bandwidth: int) -> Gesture:
        """
        Process one bandwidth reading.

        Args:
            left_bandwidth: Bins below carrier
            right_bandwidth: Bins above carrier

        Returns:
            The gesture for this reading (Gesture.NOTHING most of the time)
        """
        cfg = self.config

        if self._cycles_to_refresh > 0:
            self._cycles_to_refresh -= 1
            return Gesture.NOTHING

        if left_bandwidth > cfg.motion_bandwidth or right_bandwidth > cfg.motion_bandwidth:
            if cfg.verbose:
                print(f"[GESTURE] left:{left_bandwidth} right:{right_bandwidth}")

            direction = int(np.sign(left_bandwidth - right_bandwidth))
            if direction != 0 and direction != self._previous_direction:
                # (Re)open the window to wait for taps or double taps
                self._cycles_left_to_read = cfg.cycles_to_read
                self._previous_direction = direction
                self._direction_changes += 1

        if self._cycles_left_to_read == 0:
            return Gesture.NOTHING

        self._cycles_left_to_read -= 1
        if self._cycles_left_to_read > 0:
            return Gesture.NOTHING

        gesture = self._classify()
        print(f"[GESTURE] {gesture.value.upper()}!")

        self._previous_direction = 0
        self._direction_changes = 0
        self._cycles_to_refresh = cfg.cooldown_cycles
        return gesture

    def _classify(self) -> Gesture:
        if self._direction_changes == 1:
            if self._previous_direction == -1:
                return Gesture.PUSH
            return Gesture.PULL
        if self._direction_changes == 2:
            return Gesture.TAP
        return Gesture.DOUBLE_TAP

    @property
    def state(self) -> GestureState:
        """Current detection state."""
        if self._cycles_to_refresh > 0:
            return GestureState.COOLDOWN
        if self._cycles_left_to_read > 0:
            return GestureState.TRACKING
        return GestureState.IDLE

    @property
    def direction_changes(self) -> int:
        """Direction changes counted in the open window."""
        return self._direction_changes

    def reset(self):
        """Reset to IDLE."""
        self._previous_direction = 0
        self._direction_changes = 0
        self._cycles_left_to_read = 0
        self._cycles_to_refresh = 0
