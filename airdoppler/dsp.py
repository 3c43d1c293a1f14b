"""
Digital Signal Processing module for AirDoppler.

Handles windowing and spectral smoothing, carrier bin selection and
Doppler bandwidth estimation around the carrier.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from .config import Config
from .fft import FFTEngine


INT16_MAX = np.iinfo(np.int16).max


@dataclass(frozen=True)
class BandwidthReading:
    """Bins from the carrier until the spectrum decays, on each side."""
    left: int
    right: int

    @property
    def direction(self) -> int:
        """Sign of left - right: +1 wider below carrier, -1 wider above."""
        return int(np.sign(self.left - self.right))


class SpectralAnalyzer:
    """
    Windowed FFT with exponential smoothing between cycles.

    Owns the FFT input buffer. Each call normalizes the raw capture,
    applies a Hann window over the samples actually read, zero-pads the
    rest, transforms, and blends the new magnitudes with the previous
    cycle's spectrum.
    """

    def __init__(self, config: Config, fft: FFTEngine):
        self.config = config
        self.fft = fft
        self._alpha = config.smoothing_time_constant

        # Previous cycle's smoothed spectrum (zeros before the first cycle)
        self._old = np.zeros(fft.spec_size())

    @property
    def fft_size(self) -> int:
        return self.fft.time_size

    @staticmethod
    def normalize(samples: np.ndarray) -> np.ndarray:
        """Scale raw samples to [-1, 1]. Integer PCM is divided by int16 max."""
        samples = np.asarray(samples)
        if np.issubdtype(samples.dtype, np.integer):
            return samples.astype(np.float64) / INT16_MAX
        return np.clip(samples.astype(np.float64), -1.0, 1.0)

    @staticmethod
    def hann(count: int) -> np.ndarray:
        """Hann weights 0.5 * (1 - cos(2*pi*i / count)) for i in [0, count)."""
        i = np.arange(count)
        return 0.5 * (1.0 - np.cos(2.0 * np.pi * i / count))

    def analyze(self, raw_samples: np.ndarray,
                count: Optional[int] = None) -> np.ndarray:
        """
        Produce the smoothed magnitude spectrum for one capture.

        Args:
            raw_samples: Captured samples (int16 PCM or float in [-1, 1])
            count: Number of valid samples in raw_samples (default: all)

        Returns:
            Copy of the smoothed spectrum
        """
        raw_samples = np.asarray(raw_samples)
        if count is None:
            count = len(raw_samples)
        count = min(count, len(raw_samples))

        # Keep the most recent samples if the capture overflows the FFT
        valid = raw_samples[:count][-self.fft_size:]
        count = len(valid)

        buffer = np.zeros(self.fft_size)
        if count > 0:
            buffer[:count] = self.normalize(valid) * self.hann(count)

        self.fft.forward(buffer)

        smoothed = self._alpha * self.fft.spectrum + (1 - self._alpha) * self._old
        self.fft.set_spectrum(smoothed)
        self._old = smoothed

        return smoothed.copy()

    def reset(self):
        """Forget the smoothing history."""
        self._old = np.zeros(self.fft.spec_size())
        self.fft.set_spectrum(self._old)


class FrequencyOptimizer:
    """
    One-shot carrier bin selection.

    Scans the configured frequency range for the strongest bin in the
    current spectrum. The emitted tone rarely lands exactly on the
    nominal bin once it passes through speaker, air and microphone.
    """

    def __init__(self, config: Config):
        self.config = config

    def optimize(self, fft: FFTEngine, min_freq: Optional[float] = None,
                 max_freq: Optional[float] = None) -> int:
        """
        Find the bin with maximum magnitude in [min_freq, max_freq].

        Args:
            fft: FFT engine holding the current (smoothed) spectrum
            min_freq: Lower search bound in Hz (config default if None)
            max_freq: Upper search bound in Hz (config default if None)

        Returns:
            Primary bin index
        """
        if min_freq is None:
            min_freq = self.config.min_freq
        if max_freq is None:
            max_freq = self.config.max_freq

        min_ind = fft.freq_to_index(min_freq)
        max_ind = fft.freq_to_index(max_freq)

        primary = fft.freq_to_index(self.config.prelim_freq)
        for i in range(min_ind, max_ind + 1):
            if fft.band_magnitude(i) > fft.band_magnitude(primary):
                primary = i

        print(f"[OPT] Frequency optimized idx:{primary} "
              f"frequency:{fft.index_to_freq(primary):.1f} Hz")

        window = self.config.relevant_freq_window
        if primary < window or primary > fft.spec_size() - 1 - window:
            print(f"[OPT] Warning: primary bin {primary} is within {window} bins "
                  f"of the spectrum edge; bandwidth readings will be clipped")

        return primary


class BandwidthEstimator:
    """
    Doppler bandwidth around the carrier bin.

    Scans outward from the carrier until the normalized magnitude drops
    to the ratio threshold. A second pass looks past that first dip for
    a split-off sideband (reflections from a moving hand) and, if one is
    found, extends the bandwidth to where the sideband decays.
    """

    def __init__(self, config: Config):
        self.config = config
        self.window = config.relevant_freq_window
        self.second_peak_ratio = config.second_peak_ratio

    def estimate(self, fft: FFTEngine, primary_bin: int,
                 ratio_threshold: float) -> BandwidthReading:
        """
        Measure left and right bandwidth.

        Args:
            fft: FFT engine holding the smoothed spectrum
            primary_bin: Carrier bin
            ratio_threshold: Normalized magnitude at which a scan stops

        Returns:
            BandwidthReading with both sides in [1, relevant_freq_window]
        """
        primary_volume = fft.band_magnitude(primary_bin)

        def normalized(offset: int, side: int) -> float:
            if primary_volume <= 0:
                return 0.0
            return fft.band_magnitude(primary_bin + side * offset) / primary_volume

        left = self._scan_side(normalized, -1, ratio_threshold)
        right = self._scan_side(normalized, 1, ratio_threshold)
        return BandwidthReading(left=left, right=right)

    def _scan_side(self, normalized, side: int, ratio_threshold: float) -> int:
        # A sideband must rise back above the stop level to count
        peak_level = max(self.second_peak_ratio, ratio_threshold)

        # First pass: walk out until the peak decays
        offset = 0
        while True:
            offset += 1
            norm = normalized(offset, side)
            if norm <= ratio_threshold or offset >= self.window:
                break
        bandwidth = offset

        # Second pass: look past the first minimum for a split-off peak
        second_peak_seen = False
        while offset < self.window:
            offset += 1
            norm = normalized(offset, side)
            if norm > peak_level:
                second_peak_seen = True
            if second_peak_seen and norm <= ratio_threshold:
                break

        if second_peak_seen:
            bandwidth = offset
        return bandwidth
