import importlib
import sys
import threading
import time
import types

import numpy as np
import pytest

from airdoppler.config import Config
from airdoppler.errors import DeviceUnavailable


class FakeStream:
    """Stands in for sounddevice.InputStream / OutputStream."""

    fail_start = False

    def __init__(self, samplerate, channels, dtype, callback):
        self.samplerate = samplerate
        self.channels = channels
        self.dtype = dtype
        self.callback = callback
        self.started = False
        self.closed = False

    def start(self):
        if self.fail_start:
            raise FakePortAudioError("Device unavailable")
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


class FakePortAudioError(Exception):
    pass


@pytest.fixture
def fake_sd(monkeypatch):
    """Import the audio adapters against an in-memory sounddevice."""
    sd = types.ModuleType("sounddevice")
    sd.PortAudioError = FakePortAudioError
    sd.InputStream = type("InputStream", (FakeStream,), {})
    sd.OutputStream = type("OutputStream", (FakeStream,), {})
    monkeypatch.setitem(sys.modules, "sounddevice", sd)

    names = ("airdoppler.audio_tx", "airdoppler.audio_rx")
    for name in names:
        monkeypatch.delitem(sys.modules, name, raising=False)
    modules = types.SimpleNamespace(
        sd=sd,
        audio_tx=importlib.import_module("airdoppler.audio_tx"),
        audio_rx=importlib.import_module("airdoppler.audio_rx"),
    )
    yield modules

    for name in names:
        sys.modules.pop(name, None)


def pcm(values):
    return np.asarray(values, dtype='<i2').tobytes()


def as_pcm_values(block):
    return list(np.rint(block * np.iinfo(np.int16).max).astype(int))


# ----------------------------------------------------------------------
# LoopingPlayback
# ----------------------------------------------------------------------

def test_playback_plays_head_then_loops_region(fake_sd):
    playback = fake_sd.audio_tx.LoopingPlayback(Config())
    playback.load_looping_buffer(pcm(range(0, 1000, 100)), 2, 5)

    block = playback._next_block(12)
    assert as_pcm_values(block) == [0, 100, 200, 300, 400,
                                    200, 300, 400, 200, 300, 400, 200]


def test_playback_loops_first_half_of_tone(fake_sd):
    playback = fake_sd.audio_tx.LoopingPlayback(Config())
    playback.load_looping_buffer(pcm(range(10)), 0, 5)

    values = as_pcm_values(playback._next_block(12))
    assert values == [0, 1, 2, 3, 4, 0, 1, 2, 3, 4, 0, 1]
    # Position carries over between callbacks
    assert as_pcm_values(playback._next_block(4)) == [2, 3, 4, 0]


@pytest.mark.parametrize("loop_start, loop_end", [(-1, 5), (5, 5), (6, 5), (0, 11)])
def test_playback_rejects_invalid_loop_points(fake_sd, loop_start, loop_end):
    playback = fake_sd.audio_tx.LoopingPlayback(Config())
    with pytest.raises(ValueError):
        playback.load_looping_buffer(pcm(range(10)), loop_start, loop_end)


def test_output_callback_fills_mono_channel(fake_sd):
    playback = fake_sd.audio_tx.LoopingPlayback(Config())
    playback.load_looping_buffer(pcm([0, 32767, 0, -32767]), 0, 4)
    playback.play()

    outdata = np.zeros((6, 1), dtype=np.float32)
    playback._stream.callback(outdata, 6, None, None)
    assert list(outdata[:, 0]) == pytest.approx([0, 1, 0, -1, 0, 1])


def test_playback_play_and_pause(fake_sd):
    playback = fake_sd.audio_tx.LoopingPlayback(Config())
    playback.load_looping_buffer(pcm(range(10)), 0, 5)

    playback.play()
    stream = playback._stream
    assert playback.is_playing and stream.started

    playback.pause()
    assert not playback.is_playing
    assert stream.closed


def test_playback_without_buffer_is_unavailable(fake_sd):
    playback = fake_sd.audio_tx.LoopingPlayback(Config())
    with pytest.raises(DeviceUnavailable):
        playback.play()


def test_playback_open_failure_is_unavailable(fake_sd, monkeypatch):
    monkeypatch.setattr(fake_sd.sd.OutputStream, "fail_start", True)
    playback = fake_sd.audio_tx.LoopingPlayback(Config())
    playback.load_looping_buffer(pcm(range(10)), 0, 5)

    with pytest.raises(DeviceUnavailable) as excinfo:
        playback.play()
    assert excinfo.value.device == "speaker"
    assert not playback.is_playing


# ----------------------------------------------------------------------
# MicrophoneCapture
# ----------------------------------------------------------------------

def feed(capture, values):
    indata = np.asarray(values, dtype=np.int16).reshape(-1, 1)
    capture._input_callback(indata, len(indata), None, None)


def test_capture_reads_full_buffer_in_order(fake_sd):
    capture = fake_sd.audio_rx.MicrophoneCapture(Config())
    capture.start()
    feed(capture, range(1, 9))

    samples, count = capture.read_buffer(5)
    assert count == 5
    assert list(samples) == [1, 2, 3, 4, 5]

    samples, count = capture.read_buffer(3)
    assert count == 3
    assert list(samples) == [6, 7, 8]


def test_capture_short_read_is_zero_padded(fake_sd):
    capture = fake_sd.audio_rx.MicrophoneCapture(Config())
    capture.start()
    feed(capture, [7, 8, 9])

    samples, count = capture.read_buffer(6, timeout=0.01)
    assert count == 3
    assert len(samples) == 6
    assert samples.dtype == np.int16
    assert list(samples) == [7, 8, 9, 0, 0, 0]


def test_capture_read_waits_for_callback(fake_sd):
    capture = fake_sd.audio_rx.MicrophoneCapture(Config())
    capture.start()

    def later():
        time.sleep(0.02)
        feed(capture, range(4))

    thread = threading.Thread(target=later)
    thread.start()
    samples, count = capture.read_buffer(4, timeout=2.0)
    thread.join()

    assert count == 4
    assert list(samples) == [0, 1, 2, 3]


def test_capture_ring_keeps_most_recent_audio(fake_sd):
    config = Config(sample_rate=10)
    capture = fake_sd.audio_rx.MicrophoneCapture(config, buffer_duration=0.5)
    capture.start()
    feed(capture, range(8))

    samples, count = capture.read_buffer(5, timeout=0.01)
    assert count == 5
    assert list(samples) == [3, 4, 5, 6, 7]


def test_capture_stop_releases_reader(fake_sd):
    capture = fake_sd.audio_rx.MicrophoneCapture(Config())
    capture.start()
    stream = capture._stream
    feed(capture, [1, 2])

    capture.stop()
    assert not capture.is_running
    assert stream.closed

    started = time.monotonic()
    samples, count = capture.read_buffer(4096, timeout=5.0)
    assert time.monotonic() - started < 1.0
    assert count == 0
    assert not samples.any()


def test_capture_open_failure_is_unavailable(fake_sd, monkeypatch):
    monkeypatch.setattr(fake_sd.sd.InputStream, "fail_start", True)
    capture = fake_sd.audio_rx.MicrophoneCapture(Config())

    with pytest.raises(DeviceUnavailable) as excinfo:
        capture.start()
    assert excinfo.value.device == "microphone"
    assert not capture.is_running
