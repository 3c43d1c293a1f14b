"""
Adaptive threshold calibration for AirDoppler.

Slowly rescales the bandwidth ratio threshold based on how often the
left/right bandwidth direction flips.
"""

import numpy as np

from .config import Config


class AdaptiveCalibrator:
    """
    Outer control loop for the bandwidth ratio threshold.

    Counts direction changes over a cycle of readings. Many changes mean
    the threshold is picking up noise, so it is raised; none at all means
    it is too loose to see any variation, so it is lowered.

    This tracker is independent from the gesture state machine's
    direction tracking, even though both consume the same readings.
    """

    def __init__(self, config: Config):
        self.config = config
        self._cycle_size = config.calibration_cycle

        self._i = 0
        self._previous_direction = 0   # direction of the last reading
        self._direction_changes = 0    # changes in the current cycle

    def calibrate(self, max_vol_ratio: float, left_bandwidth: int,
                  right_bandwidth: int) -> float:
        """
        Feed one reading and return the (possibly updated) threshold.

        Args:
            max_vol_ratio: Current ratio threshold
            left_bandwidth: Left bandwidth of this reading
            right_bandwidth: Right bandwidth of this reading

        Returns:
            New ratio threshold, clamped to the configured bounds
        """
        direction = int(np.sign(left_bandwidth - right_bandwidth))

        if direction != self._previous_direction:
            self._direction_changes += 1
            self._previous_direction = direction

        self._i = (self._i + 1) % self._cycle_size
        if self._i == 0:
            cfg = self.config
            old = max_vol_ratio

            if self._direction_changes >= cfg.calibration_up_threshold:
                max_vol_ratio *= cfg.calibration_up_amount
            elif self._direction_changes == cfg.calibration_down_threshold:
                max_vol_ratio *= cfg.calibration_down_amount

            max_vol_ratio = self.clamp(max_vol_ratio)

            if cfg.verbose and max_vol_ratio != old:
                print(f"[CAL] {self._direction_changes} direction changes, "
                      f"ratio {old:.4f} -> {max_vol_ratio:.4f}")

            self._direction_changes = 0

        return self.clamp(max_vol_ratio)

    def clamp(self, max_vol_ratio: float) -> float:
        """Apply threshold boundaries."""
        return min(max(max_vol_ratio, self.config.min_vol_ratio),
                   self.config.max_vol_ratio)

    @property
    def direction_changes(self) -> int:
        """Direction changes counted so far in the current cycle."""
        return self._direction_changes

    @property
    def position(self) -> int:
        """Readings consumed in the current cycle."""
        return self._i

    def reset(self):
        """Start a fresh cycle."""
        self._i = 0
        self._previous_direction = 0
        self._direction_changes = 0
