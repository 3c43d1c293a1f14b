"""
Tone generation module for AirDoppler.

Synthesizes the near-ultrasonic carrier as a looping 16-bit PCM buffer
and hands it to an audio playback backend.
"""

import numpy as np
from dataclasses import dataclass

from .config import Config


@dataclass(frozen=True)
class ToneSpec:
    """One periodic waveform buffer."""
    frequency: float
    sample_rate: int
    duration_samples: int

    @property
    def loop_start(self) -> int:
        return 0

    @property
    def loop_end(self) -> int:
        """Only the first half of the buffer is looped."""
        return self.duration_samples // 2


def generate_tone(spec: ToneSpec, amplitude: float = 1.0) -> bytes:
    """
    Sample a sine wave and convert it to 16-bit PCM.

    Args:
        spec: Frequency, sample rate and length of the buffer
        amplitude: Scale in [0, 1] relative to int16 full scale

    Returns:
        Little-endian 16-bit mono PCM bytes (2 bytes per sample)
    """
    i = np.arange(spec.duration_samples)
    sample = np.sin(2 * np.pi * i / (spec.sample_rate / spec.frequency))

    amplitude = float(np.clip(amplitude, 0.0, 1.0))
    pcm = (sample * amplitude * np.iinfo(np.int16).max).astype('<i2')
    return pcm.tobytes()


class ToneEmitter:
    """
    Continuous carrier tone.

    Keeps the current ToneSpec and reloads the playback backend's looped
    buffer whenever the frequency changes. Device errors from the
    backend propagate to the caller.
    """

    def __init__(self, config: Config, playback):
        self.config = config
        self.playback = playback
        self._playing = False
        self._load(config.prelim_freq)

    def _load(self, frequency: float):
        self._spec = ToneSpec(
            frequency=frequency,
            sample_rate=self.config.sample_rate,
            duration_samples=self.config.tone_samples,
        )
        pcm = generate_tone(self._spec, self.config.tone_amplitude)
        self.playback.load_looping_buffer(pcm, self._spec.loop_start,
                                          self._spec.loop_end)

    @property
    def spec(self) -> ToneSpec:
        return self._spec

    @property
    def frequency(self) -> float:
        return self._spec.frequency

    @property
    def is_playing(self) -> bool:
        return self._playing

    def play(self):
        """Start or resume looped playback."""
        print(f"[TX] Start playing {self._spec.frequency:.0f} Hz")
        self.playback.play()
        self._playing = True

    def pause(self):
        """Stop playback, keeping the loaded tone."""
        print("[TX] Stop playing")
        self.playback.pause()
        self._playing = False

    def set_frequency(self, frequency: float):
        """Regenerate the tone at a new frequency and start playing it."""
        self._load(frequency)
        self.play()
