"""
Audio transmission module - plays a looping PCM buffer.

Backs ToneEmitter with a sounddevice output stream that loops a region
of the loaded buffer forever.
"""

import numpy as np
import threading
from typing import Optional

try:
    import sounddevice as sd
except ImportError:
    raise ImportError("sounddevice required: pip install sounddevice")

from .config import Config
from .errors import DeviceUnavailable


class LoopingPlayback:
    """
    Speaker output with loop points.

    Plays the buffer from the start, then repeats [loop_start, loop_end)
    until paused. Pausing keeps the read position so play() resumes
    where it stopped.
    """

    def __init__(self, config: Config):
        self.config = config
        self._stream: Optional[sd.OutputStream] = None
        self._lock = threading.Lock()

        self._samples = np.zeros(0, dtype=np.float32)
        self._loop_start = 0
        self._loop_end = 0
        self._position = 0

    def load_looping_buffer(self, pcm_bytes: bytes, loop_start: int, loop_end: int):
        """
        Replace the played buffer. This stops playing!

        Args:
            pcm_bytes: Little-endian 16-bit mono PCM
            loop_start: First looped sample
            loop_end: One past the last looped sample
        """
        samples = np.frombuffer(pcm_bytes, dtype='<i2').astype(np.float32)
        samples /= np.iinfo(np.int16).max

        if not 0 <= loop_start < loop_end <= len(samples):
            raise ValueError(
                f"Invalid loop points [{loop_start}, {loop_end}) "
                f"for {len(samples)} samples"
            )

        self.pause()
        with self._lock:
            self._samples = samples
            self._loop_start = loop_start
            self._loop_end = loop_end
            self._position = 0

    def _next_block(self, frames: int) -> np.ndarray:
        out = np.empty(frames, dtype=np.float32)
        filled = 0
        with self._lock:
            while filled < frames:
                take = min(frames - filled, self._loop_end - self._position)
                out[filled:filled + take] = self._samples[self._position:self._position + take]
                filled += take
                self._position += take
                if self._position >= self._loop_end:
                    self._position = self._loop_start
        return out

    def _output_callback(self, outdata: np.ndarray, frames: int,
                         time_info, status):
        """Sounddevice output callback."""
        if status:
            print(f"[TX] Output status: {status}")

        outdata[:, 0] = self._next_block(frames)

    def play(self):
        """Start (or resume) playing the loaded buffer."""
        if self._stream is not None:
            return
        if len(self._samples) == 0:
            raise DeviceUnavailable("speaker", "no buffer loaded")

        try:
            self._stream = sd.OutputStream(
                samplerate=self.config.sample_rate,
                channels=1,
                dtype=np.float32,
                callback=self._output_callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            raise DeviceUnavailable("speaker", str(e)) from e

    def pause(self):
        """Stop playing, keeping the buffer and position."""
        if self._stream is not None:
            stream, self._stream = self._stream, None
            try:
                stream.stop()
                stream.close()
            except sd.PortAudioError as e:
                raise DeviceUnavailable("speaker", str(e)) from e

    @property
    def is_playing(self) -> bool:
        return self._stream is not None
