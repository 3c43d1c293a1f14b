"""
Audio reception module - captures microphone input.

Provides buffered reads of mono 16-bit samples for the analysis cycle.
"""

import numpy as np
import threading
from collections import deque
from typing import Optional, Tuple

try:
    import sounddevice as sd
except ImportError:
    raise ImportError("sounddevice required: pip install sounddevice")

from .config import Config
from .errors import DeviceUnavailable


class MicrophoneCapture:
    """
    Microphone input receiver.

    Captures audio from the default input device into a ring buffer.
    read_buffer() drains up to the requested number of samples, waiting
    briefly for more if the buffer is short.
    """

    def __init__(self, config: Config, buffer_duration: float = 2.0):
        """
        Initialize receiver.

        Args:
            config: AirDoppler configuration
            buffer_duration: Seconds of audio history to retain
        """
        self.config = config
        self._stream: Optional[sd.InputStream] = None
        self._running: bool = False

        # Circular buffer for audio samples
        buffer_size = int(buffer_duration * config.sample_rate)
        self._buffer = deque(maxlen=buffer_size)
        self._lock = threading.Lock()
        self._data_ready = threading.Condition(self._lock)

    def _input_callback(self, indata: np.ndarray, frames: int,
                        time_info, status):
        """Sounddevice input callback."""
        if status and 'overflow' not in str(status):
            print(f"[RX] Input status: {status}")

        with self._data_ready:
            self._buffer.extend(indata[:, 0])
            self._data_ready.notify()

    def start(self):
        """Start recording from microphone."""
        if self._running:
            return

        print(f"[RX] Starting microphone capture at {self.config.sample_rate} Hz")

        try:
            self._stream = sd.InputStream(
                samplerate=self.config.sample_rate,
                channels=1,
                dtype=np.int16,
                callback=self._input_callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            # Another application may still hold the microphone
            self._stream = None
            raise DeviceUnavailable("microphone", str(e)) from e

        self._running = True
        print("[RX] Recording started")

    def stop(self):
        """Stop recording."""
        stream, self._stream = self._stream, None
        with self._data_ready:
            self._running = False
            self._buffer.clear()
            self._data_ready.notify_all()

        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except sd.PortAudioError as e:
                raise DeviceUnavailable("microphone", str(e)) from e
        print("[RX] Recording stopped")

    def read_buffer(self, max_samples: int,
                    timeout: Optional[float] = None) -> Tuple[np.ndarray, int]:
        """
        Read up to max_samples of the oldest buffered audio.

        Args:
            max_samples: Maximum samples to return
            timeout: Seconds to wait for a full buffer
                     (default: the time max_samples takes to arrive)

        Returns:
            (samples, count) - int16 array of length max_samples, of which
            only the first count entries are valid
        """
        if timeout is None:
            timeout = 2 * max_samples / self.config.sample_rate

        samples = np.zeros(max_samples, dtype=np.int16)
        with self._data_ready:
            self._data_ready.wait_for(
                lambda: len(self._buffer) >= max_samples or not self._running,
                timeout=timeout,
            )
            count = min(max_samples, len(self._buffer))
            for i in range(count):
                samples[i] = self._buffer.popleft()

        return samples, count

    @property
    def is_running(self) -> bool:
        """Check if receiver is active."""
        return self._running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
