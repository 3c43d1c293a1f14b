"""
Gesture pipeline for AirDoppler.

Plays the carrier, locks onto the received carrier bin, then runs the
capture -> analyze -> estimate -> classify -> calibrate cycle on a
background thread until paused.
"""

import queue
import threading
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .calibration import AdaptiveCalibrator
from .config import Config
from .dsp import (BandwidthEstimator, BandwidthReading, FrequencyOptimizer,
                  SpectralAnalyzer)
from .errors import DeviceUnavailable
from .fft import FFTEngine, get_higher_power_of_two
from .segmentation import Gesture, GestureStateMachine, dispatch_gesture
from .tone import ToneEmitter


@dataclass
class PipelineContext:
    """State shared between the pipeline's components."""
    max_vol_ratio: float                 # Bandwidth ratio threshold
    primary_bin: Optional[int] = None    # Carrier bin, locked once per start()
    fft: Optional[FFTEngine] = None      # Sized by the first capture


class EventQueue(queue.Queue):
    """
    Bounded gesture event queue that never blocks the analysis cycle.

    Holds one event per cycle, Gesture.NOTHING included. When full, the
    oldest NOTHING is discarded to make room; only a queue holding
    nothing but real gestures loses its oldest gesture. A consumer that
    polls late still sees every recent push, pull, tap and double tap.
    """

    def __init__(self, limit: int):
        super().__init__()
        self.limit = limit

    def _put(self, item):
        if len(self.queue) >= self.limit:
            try:
                self.queue.remove(Gesture.NOTHING)
            except ValueError:
                self.queue.popleft()
            self.unfinished_tasks -= 1
        self.queue.append(item)


@dataclass(frozen=True)
class CycleResult:
    """Outputs of one analysis cycle."""
    reading: BandwidthReading
    gesture: Gesture
    max_vol_ratio: float


class Doppler:
    """
    Acoustic Doppler gesture detector.

    Owns the tone emitter, the capture device and one instance of each
    pipeline component. Cycles run strictly one at a time; pause() only
    takes effect between cycles and stops the tone and the capture
    together.
    """

    def __init__(self, config: Config, capture=None, playback=None,
                 listener=None):
        """
        Args:
            config: AirDoppler configuration
            capture: AudioCapture backend (microphone if None)
            playback: AudioPlayback backend (speaker if None)
            listener: Optional GestureListener
        """
        self.config = config

        if capture is None:
            from .audio_rx import MicrophoneCapture
            capture = MicrophoneCapture(config)
        if playback is None:
            from .audio_tx import LoopingPlayback
            playback = LoopingPlayback(config)

        self.capture = capture
        self.tone = ToneEmitter(config, playback)

        self.context = PipelineContext(max_vol_ratio=config.max_vol_ratio_default)
        self.analyzer: Optional[SpectralAnalyzer] = None
        self.optimizer = FrequencyOptimizer(config)
        self.estimator = BandwidthEstimator(config)
        self.calibrator = AdaptiveCalibrator(config)
        self.gestures = GestureStateMachine(config)

        self.events = EventQueue(config.event_queue_size)
        self._listener = listener

        # Reentrant so listener callbacks may call pause() and start()
        self._cycle_lock = threading.RLock()
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._retired: Optional[threading.Thread] = None
        self._last: Optional[CycleResult] = None

    def set_gesture_listener(self, listener):
        """Set listener for gesture events."""
        self._listener = listener

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """
        Start tone playback and detection.

        Returns:
            True if started, False when a device could not be opened
        """
        if self.is_running:
            return True

        # A worker paused from its own callback finishes its cycle first
        retired, self._retired = self._retired, None
        if retired is not None and retired is not threading.current_thread():
            retired.join()

        try:
            self.tone.play()
            self.capture.start()
        except DeviceUnavailable as e:
            print(f"[DOPPLER] Start failed: {e}")
            self._release_devices()
            return False

        with self._cycle_lock:
            self.context.primary_bin = None
            self.gestures.reset()
            if self.analyzer is not None:
                self.analyzer.reset()

        # Fresh event per worker: a retired worker keeps its own, already set
        self._stop = threading.Event()
        self._worker = threading.Thread(target=self._run, args=(self._stop,),
                                        name="doppler-cycle", daemon=True)
        self._worker.start()
        return True

    def pause(self) -> bool:
        """
        Stop detection and tone playback.

        Returns:
            True if stopped, False when a device reported an error
        """
        self._stop.set()
        worker, self._worker = self._worker, None
        if worker is not None:
            if worker is threading.current_thread():
                # Called from a listener; the worker exits after this cycle
                self._retired = worker
            else:
                worker.join()

        return self._release_devices()

    def _release_devices(self) -> bool:
        ok = True
        for stop in (self.capture.stop, self.tone.pause):
            try:
                stop()
            except DeviceUnavailable as e:
                print(f"[DOPPLER] Stop failed: {e}")
                ok = False
        return ok

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def __enter__(self):
        if not self.start():
            raise DeviceUnavailable("audio", "pipeline could not start")
        return self

    def __exit__(self, *args):
        self.pause()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _run(self, stop: threading.Event):
        """Worker loop: settle, optimize once, then cycle until stopped."""
        print("[DOPPLER] Waiting for tone to settle...")
        deadline = time.monotonic() + self.config.settle_delay_sec
        analyzed = False
        while not stop.is_set() and (not analyzed or time.monotonic() < deadline):
            samples, count = self.capture.read_buffer(self.config.buffer_size)
            if count > 0:
                with self._cycle_lock:
                    self._analyze(samples, count)
                analyzed = True

        if stop.is_set():
            return

        self.optimize()

        while not stop.is_set():
            samples, count = self.capture.read_buffer(self.config.buffer_size)
            self.step(samples, count)

    def _analyze(self, samples: np.ndarray, count: int):
        if self.context.fft is None:
            # A short first read (slow device start) must not shrink the FFT
            size = max(get_higher_power_of_two(count), self.config.fft_size)
            self.context.fft = FFTEngine(size, self.config.sample_rate)
            print(f"[DOPPLER] FFT size {size} "
                  f"({self.context.fft.band_width:.2f} Hz per bin)")
        if self.analyzer is None:
            self.analyzer = SpectralAnalyzer(self.config, self.context.fft)
        self.analyzer.analyze(samples, count)

    def optimize(self) -> int:
        """Lock the carrier bin from the current spectrum."""
        with self._cycle_lock:
            if self.context.fft is None:
                raise RuntimeError("No spectrum yet: analyze a capture first")
            self.context.primary_bin = self.optimizer.optimize(self.context.fft)
            return self.context.primary_bin

    def step(self, samples: np.ndarray, count: Optional[int] = None) -> Optional[CycleResult]:
        """
        Run one full analysis cycle on a captured buffer.

        The carrier bin is locked from this buffer if it has not been
        locked yet.

        Args:
            samples: Captured samples
            count: Valid samples in the buffer (default: all)

        Returns:
            CycleResult, or None if the buffer held no samples
        """
        if count is None:
            count = len(samples)
        if count <= 0:
            return None

        with self._cycle_lock:
            self._analyze(samples, count)

            fft = self.context.fft
            if self.context.primary_bin is None:
                self.context.primary_bin = self.optimizer.optimize(fft)

            reading = self.estimator.estimate(fft, self.context.primary_bin,
                                              self.context.max_vol_ratio)

            gesture = self.gestures.update(reading.left, reading.right)
            self._emit(gesture)

            self.context.max_vol_ratio = self.calibrator.calibrate(
                self.context.max_vol_ratio, reading.left, reading.right
            )

            self._last = CycleResult(reading=reading, gesture=gesture,
                                     max_vol_ratio=self.context.max_vol_ratio)
            return self._last

    def _emit(self, gesture: Gesture):
        if self._listener is not None:
            dispatch_gesture(self._listener, gesture)

        self.events.put_nowait(gesture)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def last_result(self) -> Optional[CycleResult]:
        return self._last

    @property
    def primary_bin(self) -> Optional[int]:
        return self.context.primary_bin

    @property
    def max_vol_ratio(self) -> float:
        return self.context.max_vol_ratio

    def spectrum(self) -> Optional[np.ndarray]:
        """Copy of the current smoothed spectrum."""
        with self._cycle_lock:
            if self.context.fft is None:
                return None
            return self.context.fft.spectrum
