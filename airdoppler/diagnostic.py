#!/usr/bin/env python3
"""
AirDoppler Diagnostic Tool

Quick checks to verify audio hardware and basic functionality.
Run this first to make sure everything works.
"""

import numpy as np

from .config import Config
from .dsp import BandwidthEstimator, FrequencyOptimizer, SpectralAnalyzer
from .fft import FFTEngine, get_higher_power_of_two
from .tone import ToneSpec, generate_tone


def check_imports():
    """Check all required imports."""
    print("=" * 50)
    print("1. CHECKING IMPORTS")
    print("=" * 50)

    checks = []

    for name in ("sounddevice", "numpy", "scipy", "matplotlib"):
        try:
            __import__(name)
            checks.append((name, "✅"))
        except (ImportError, OSError) as e:
            checks.append((name, f"❌ {e}"))

    for name, status in checks:
        print(f"  {name}: {status}")

    return all("✅" in s for _, s in checks)


def check_audio_devices():
    """List available audio devices."""
    print("\n" + "=" * 50)
    print("2. AUDIO DEVICES")
    print("=" * 50)

    import sounddevice as sd

    print("\nDefault devices:")
    defaults = sd.default.device
    print(f"  Input:  {defaults[0]}")
    print(f"  Output: {defaults[1]}")

    print("\nAll devices:")
    devices = sd.query_devices()
    for i, d in enumerate(devices):
        marker = ""
        if i == defaults[0]:
            marker += " [DEFAULT INPUT]"
        if i == defaults[1]:
            marker += " [DEFAULT OUTPUT]"

        channels = f"in={d['max_input_channels']}, out={d['max_output_channels']}"
        print(f"  [{i}] {d['name'][:40]:<40} ({channels}){marker}")

    return len(devices) > 0


def check_sample_rate(config: Config):
    """Check the configured sample rate is supported."""
    print("\n" + "=" * 50)
    print("3. SAMPLE RATE SUPPORT")
    print("=" * 50)

    import sounddevice as sd

    try:
        sd.check_input_settings(samplerate=config.sample_rate, dtype='int16')
        sd.check_output_settings(samplerate=config.sample_rate)
        print(f"  {config.sample_rate} Hz: ✅ Supported")
        return True
    except sd.PortAudioError as e:
        print(f"  {config.sample_rate} Hz: ❌ {e}")
        return False


def _tone_samples(config: Config, duration: float) -> np.ndarray:
    spec = ToneSpec(frequency=config.prelim_freq, sample_rate=config.sample_rate,
                    duration_samples=int(duration * config.sample_rate))
    pcm = np.frombuffer(generate_tone(spec, config.tone_amplitude), dtype='<i2')
    return pcm.astype(np.float32) / np.iinfo(np.int16).max


def test_tone_output(config: Config, duration=1.0):
    """Test playing the carrier tone."""
    print("\n" + "=" * 50)
    print("4. TONE OUTPUT TEST")
    print("=" * 50)

    import sounddevice as sd

    tone = _tone_samples(config, duration)

    print(f"  Playing {config.prelim_freq:.0f} Hz tone for {duration}s...")
    print("  (This is near-ultrasonic - you may not hear it clearly)")

    try:
        sd.play(tone, samplerate=config.sample_rate)
        sd.wait()
        print("  ✅ Tone played successfully")
        return True
    except sd.PortAudioError as e:
        print(f"  ❌ Error: {e}")
        return False


def test_microphone(config: Config, duration=1.0):
    """Test recording from microphone."""
    print("\n" + "=" * 50)
    print("5. MICROPHONE TEST")
    print("=" * 50)

    import sounddevice as sd

    print(f"  Recording for {duration}s...")

    try:
        recording = sd.rec(int(duration * config.sample_rate),
                           samplerate=config.sample_rate,
                           channels=1,
                           dtype=np.int16)
        sd.wait()
    except sd.PortAudioError as e:
        print(f"  ❌ Error: {e}")
        return False

    levels = SpectralAnalyzer.normalize(recording[:, 0])
    rms = np.sqrt(np.mean(levels ** 2))
    peak = np.max(np.abs(levels))

    print(f"  ✅ Recorded {len(recording)} samples")
    print(f"  RMS level: {rms:.6f}")
    print(f"  Peak level: {peak:.6f}")

    if rms < 0.0001:
        print("  ⚠️  Very low signal - check microphone permissions!")

    return True


def test_duplex(config: Config, duration=1.0):
    """Play the tone while recording and run one analysis pass on it."""
    print("\n" + "=" * 50)
    print("6. DUPLEX TEST (Play + Record)")
    print("=" * 50)

    import sounddevice as sd

    print(f"  Playing {config.prelim_freq:.0f} Hz while recording for {duration}s...")

    tone = _tone_samples(config, duration)

    try:
        recording = sd.playrec(tone, samplerate=config.sample_rate,
                               channels=1, dtype=np.int16)
        sd.wait()
    except sd.PortAudioError as e:
        print(f"  ❌ Error: {e}")
        return False, 0.0

    # Analyze the last full capture buffer, as the pipeline would
    samples = recording[-config.buffer_size:, 0]
    fft = FFTEngine(get_higher_power_of_two(len(samples)), config.sample_rate)
    SpectralAnalyzer(config, fft).analyze(samples)

    primary = FrequencyOptimizer(config).optimize(fft)
    reading = BandwidthEstimator(config).estimate(fft, primary,
                                                  config.max_vol_ratio_default)

    spectrum = fft.spectrum
    noise_floor = np.median(spectrum[fft.freq_to_index(1000):fft.freq_to_index(2000)])
    snr = 20 * np.log10(spectrum[primary] / (noise_floor + 1e-10))

    print("  ✅ Duplex working")
    print(f"  Carrier detected at ~{fft.index_to_freq(primary):.0f} Hz (bin {primary})")
    print(f"  SNR: {snr:.1f} dB")
    print(f"  Idle bandwidth: left={reading.left} right={reading.right}")

    if snr > 20:
        print("  ✅ Good signal - ready for gesture detection!")
    elif snr > 10:
        print("  ⚠️  Weak signal - may work with tuning")
    else:
        print("  ❌ Poor signal - try a different --freq or a louder --amplitude")

    if max(reading.left, reading.right) > config.motion_bandwidth:
        print("  ⚠️  Wide idle bandwidth - keep hands away, or expect false gestures")

    return True, snr


def run_all_diagnostics(config: Config = None):
    """Run all diagnostic tests."""
    if config is None:
        config = Config()

    print("\n" + "🔊 " * 20)
    print("   AIRDOPPLER DIAGNOSTIC")
    print("🔊 " * 20)

    results = []

    # 1. Imports
    imports_ok = check_imports()
    results.append(("Imports", imports_ok))

    if imports_ok:
        results.append(("Audio Devices", check_audio_devices()))
        results.append(("Sample Rate", check_sample_rate(config)))
        results.append(("Tone Output", test_tone_output(config, duration=0.5)))
        results.append(("Microphone", test_microphone(config, duration=0.5)))
        duplex_ok, _ = test_duplex(config, duration=1.0)
        results.append(("Duplex", duplex_ok))

    # Summary
    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)

    all_ok = True
    for name, ok in results:
        status = "✅" if ok else "❌"
        print(f"  {name}: {status}")
        if not ok:
            all_ok = False

    print("\n" + "-" * 50)
    if all_ok:
        print("🎉 All tests passed! Ready for gesture detection.")
        print("\nNext steps:")
        print("  1. python main.py scan        # Lock the carrier bin")
        print("  2. python main.py visualize   # See the carrier band")
        print("  3. python main.py detect      # Detect gestures")
    else:
        print("⚠️  Some tests failed. Check errors above.")

    return all_ok


if __name__ == "__main__":
    run_all_diagnostics()
