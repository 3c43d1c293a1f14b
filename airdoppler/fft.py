"""
FFT module for AirDoppler.

Forward real FFT with per-bin magnitude access and bin/frequency
conversion helpers. The magnitude spectrum is kept between calls so the
analyzer can write smoothed values back into it.
"""

import numpy as np
from scipy.fft import rfft


def get_higher_power_of_two(val: int) -> int:
    """
    Smallest power of two >= val.

    See http://www.graphics.stanford.edu/~seander/bithacks.html
    (round up to the next highest power of 2).
    """
    if val <= 1:
        return 1
    val -= 1
    val |= val >> 1
    val |= val >> 2
    val |= val >> 4
    val |= val >> 8
    val |= val >> 16
    val += 1
    return val


class FFTEngine:
    """
    Real-input FFT with a persistent magnitude spectrum.

    Spectrum has time_size // 2 + 1 bins. Bin i covers frequencies
    around i * sample_rate / time_size; the first and last bins are
    half-width.
    """

    def __init__(self, time_size: int, sample_rate: int):
        if time_size <= 0 or time_size & (time_size - 1):
            raise ValueError(f"FFT size must be a power of two, got {time_size}")

        self.time_size = time_size
        self.sample_rate = sample_rate
        self._spectrum = np.zeros(time_size // 2 + 1)

    @property
    def band_width(self) -> float:
        """Width of a full bin in Hz."""
        return self.sample_rate / self.time_size

    def spec_size(self) -> int:
        """Number of bins in the magnitude spectrum."""
        return len(self._spectrum)

    def forward(self, samples: np.ndarray):
        """
        Transform a buffer of time_size real samples.

        Magnitudes replace the current spectrum.
        """
        samples = np.asarray(samples, dtype=np.float64)
        if len(samples) != self.time_size:
            raise ValueError(
                f"Expected {self.time_size} samples, got {len(samples)}"
            )
        self._spectrum = np.abs(rfft(samples))

    def band_magnitude(self, i: int) -> float:
        """Magnitude of bin i. Indices outside the spectrum clamp to the edges."""
        i = min(max(i, 0), len(self._spectrum) - 1)
        return float(self._spectrum[i])

    def set_band_magnitude(self, i: int, value: float):
        """Overwrite the magnitude of bin i. Out-of-range indices are ignored."""
        if 0 <= i < len(self._spectrum):
            self._spectrum[i] = max(value, 0.0)

    @property
    def spectrum(self) -> np.ndarray:
        """Copy of the current magnitude spectrum."""
        return self._spectrum.copy()

    def set_spectrum(self, values: np.ndarray):
        """Replace the whole magnitude spectrum."""
        values = np.asarray(values, dtype=np.float64)
        if values.shape != self._spectrum.shape:
            raise ValueError(
                f"Expected {self._spectrum.shape[0]} bins, got {values.shape}"
            )
        self._spectrum = np.maximum(values, 0.0)

    def freq_to_index(self, freq: float) -> int:
        """Bin containing the given frequency."""
        bw = self.band_width
        if freq < bw / 2:
            return 0
        if freq > self.sample_rate / 2 - bw / 2:
            return self.spec_size() - 1
        return int(round(self.time_size * freq / self.sample_rate))

    def index_to_freq(self, i: int) -> float:
        """Representative frequency of bin i."""
        bw = self.band_width
        if i <= 0:
            # First bin is half-width: report the middle of [0, bw/2)
            return bw * 0.25
        if i >= self.spec_size() - 1:
            last_bin_begin = self.sample_rate / 2 - bw / 2
            return last_bin_begin + bw * 0.25
        return i * bw
