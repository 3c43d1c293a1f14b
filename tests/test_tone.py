import numpy as np
import pytest

from airdoppler.config import Config
from airdoppler.tone import ToneEmitter, ToneSpec, generate_tone


def test_tone_buffer_layout():
    config = Config()
    spec = ToneSpec(frequency=20000, sample_rate=config.sample_rate,
                    duration_samples=config.tone_samples)
    pcm = generate_tone(spec)

    assert len(pcm) == 2 * 5 * 44100
    assert spec.loop_start == 0
    assert spec.loop_end == 5 * 44100 // 2


def test_tone_samples_are_little_endian_int16_sine():
    # A quarter of the sample rate gives 0, +max, 0, -max
    spec = ToneSpec(frequency=11025, sample_rate=44100, duration_samples=8)
    samples = np.frombuffer(generate_tone(spec), dtype='<i2')
    assert list(samples) == [0, 32767, 0, -32767] * 2

    quiet = np.frombuffer(generate_tone(spec, amplitude=0.5), dtype='<i2')
    assert quiet.max() == 16383


def test_tone_has_expected_frequency():
    spec = ToneSpec(frequency=19000, sample_rate=44100, duration_samples=44100)
    samples = np.frombuffer(generate_tone(spec), dtype='<i2').astype(float)
    spectrum = np.abs(np.fft.rfft(samples))
    freqs = np.fft.rfftfreq(len(samples), 1 / 44100)
    assert freqs[np.argmax(spectrum)] == pytest.approx(19000, abs=1.0)


def test_emitter_loads_preliminary_tone(playback):
    config = Config()
    emitter = ToneEmitter(config, playback)

    assert len(playback.loads) == 1
    pcm, loop_start, loop_end = playback.loads[0]
    assert len(pcm) == 2 * config.tone_samples
    assert (loop_start, loop_end) == (0, config.loop_end)
    assert emitter.frequency == config.prelim_freq
    assert not emitter.is_playing


def test_play_and_pause(playback):
    emitter = ToneEmitter(Config(), playback)
    emitter.play()
    assert playback.playing and emitter.is_playing
    emitter.pause()
    assert not playback.playing and not emitter.is_playing
    # Pausing keeps the loaded tone
    assert len(playback.loads) == 1


def test_set_frequency_reloads_and_resumes(playback):
    emitter = ToneEmitter(Config(tone_duration_sec=1), playback)
    emitter.play()
    emitter.set_frequency(19500)

    assert len(playback.loads) == 2
    assert playback.loads[1][0] != playback.loads[0][0]
    assert emitter.frequency == 19500
    assert playback.playing
    assert playback.play_calls == 2
