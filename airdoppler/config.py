"""
Configuration module for AirDoppler.

All tunable parameters in one place for easy experimentation.
"""

from dataclasses import dataclass

from .fft import get_higher_power_of_two


@dataclass
class Config:
    """AirDoppler configuration parameters."""

    # ==========================================================================
    # Audio Settings
    # ==========================================================================
    sample_rate: int = 44100              # Hz - capture and playback rate
    prelim_freq: float = 20000.0          # Hz - tone emitted before optimization
    min_freq: float = 19000.0             # Hz - lower edge of carrier search
    max_freq: float = 21000.0             # Hz - upper edge of carrier search
    tone_duration_sec: int = 5            # Seconds of generated tone buffer
    tone_amplitude: float = 1.0           # 0-1, fraction of int16 full scale
    buffer_size: int = 4096               # Samples requested per capture read
    settle_delay_sec: float = 1.0         # Wait for the tone to settle before optimizing

    # ==========================================================================
    # Spectral Analysis
    # ==========================================================================
    smoothing_time_constant: float = 0.5  # EMA alpha against previous spectrum

    # ==========================================================================
    # Bandwidth Estimation
    # ==========================================================================
    relevant_freq_window: int = 33        # Max bins scanned each side of carrier
    max_vol_ratio_default: float = 0.1    # Initial ratio threshold
    second_peak_ratio: float = 0.3        # Ratio marking a split-off sideband

    # ==========================================================================
    # Adaptive Calibration
    # ==========================================================================
    calibration_cycle: int = 20           # Readings per calibration cycle
    calibration_up_threshold: int = 5     # Direction changes to loosen threshold
    calibration_down_threshold: int = 0   # Direction changes to tighten threshold
    calibration_up_amount: float = 1.1
    calibration_down_amount: float = 0.9
    min_vol_ratio: float = 0.0001
    max_vol_ratio: float = 0.95

    # ==========================================================================
    # Gesture Detection
    # ==========================================================================
    motion_bandwidth: int = 4             # Bandwidth (bins) that counts as motion
    cycles_to_read: int = 5               # Debounce window length in readings
    cooldown_cycles: int = 5              # Readings suppressed after a gesture
    event_queue_size: int = 64            # Bounded gesture event queue

    # ==========================================================================
    # Output
    # ==========================================================================
    verbose: bool = False                 # Per-cycle logging
    ui_update_interval_ms: int = 100      # Visualization refresh rate

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def tone_samples(self) -> int:
        """Number of samples in the generated tone buffer."""
        return self.sample_rate * self.tone_duration_sec

    @property
    def loop_end(self) -> int:
        """Loop end point: the first half of the tone buffer is looped."""
        return self.tone_samples // 2

    @property
    def fft_size(self) -> int:
        """FFT size implied by the configured capture size."""
        return get_higher_power_of_two(self.buffer_size)

    @property
    def freq_resolution(self) -> float:
        """Frequency resolution in Hz."""
        return self.sample_rate / self.fft_size

    @property
    def cycle_duration(self) -> float:
        """Approximate seconds of audio consumed per analysis cycle."""
        return self.buffer_size / self.sample_rate
