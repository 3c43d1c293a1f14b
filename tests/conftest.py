import time

import numpy as np
import pytest

from airdoppler.config import Config
from airdoppler.errors import DeviceUnavailable
from airdoppler.fft import FFTEngine


class FakePlayback:
    def __init__(self):
        self.loads = []
        self.playing = False
        self.play_calls = 0
        self.pause_calls = 0

    def load_looping_buffer(self, pcm_bytes, loop_start, loop_end):
        self.playing = False
        self.loads.append((pcm_bytes, loop_start, loop_end))

    def play(self):
        self.play_calls += 1
        self.playing = True

    def pause(self):
        self.pause_calls += 1
        self.playing = False


class FakeCapture:
    """Serves a fixed buffer (or a queue of buffers) on every read."""

    def __init__(self, buffer, fail_start=False):
        self.buffer = np.asarray(buffer, dtype=np.int16)
        self.queue = []
        self.fail_start = fail_start
        self.running = False
        self.reads = 0

    def start(self):
        if self.fail_start:
            raise DeviceUnavailable("microphone", "busy")
        self.running = True

    def stop(self):
        self.running = False

    def read_buffer(self, max_samples):
        time.sleep(0.001)
        self.reads += 1
        data = self.queue.pop(0) if self.queue else self.buffer
        count = min(max_samples, len(data))
        samples = np.zeros(max_samples, dtype=np.int16)
        samples[:count] = data[:count]
        return samples, count


def make_tones(n, sample_rate, components):
    """int16 sum of sines; components is a list of (freq, amplitude)."""
    t = np.arange(n) / sample_rate
    signal = np.zeros(n)
    for freq, amplitude in components:
        signal += amplitude * np.sin(2 * np.pi * freq * t)
    return (signal * np.iinfo(np.int16).max).astype(np.int16)


@pytest.fixture
def config():
    return Config(settle_delay_sec=0.0)


@pytest.fixture
def playback():
    return FakePlayback()


@pytest.fixture
def fft_4096(config):
    return FFTEngine(4096, config.sample_rate)


@pytest.fixture
def carrier_bin():
    return 1858


@pytest.fixture
def quiet_buffer(config, fft_4096, carrier_bin):
    """Clean carrier exactly on a bin."""
    freq = fft_4096.index_to_freq(carrier_bin)
    return make_tones(4096, config.sample_rate, [(freq, 0.5)])


@pytest.fixture
def motion_buffer(config, fft_4096, carrier_bin):
    """Carrier plus a sideband 10 bins above it."""
    freq = fft_4096.index_to_freq(carrier_bin)
    sideband = fft_4096.index_to_freq(carrier_bin + 10)
    return make_tones(4096, config.sample_rate, [(freq, 0.5), (sideband, 0.4)])


@pytest.fixture
def capture_factory():
    return FakeCapture
