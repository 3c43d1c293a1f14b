"""
User interface module for AirDoppler.

Console gesture feed and a live matplotlib view of the carrier band.
"""

import numpy as np
import time
from collections import deque
from typing import Optional

from .config import Config
from .engine import CycleResult, Doppler
from .segmentation import Gesture, GestureListener


_SYMBOLS = {
    Gesture.PUSH: "⏩",
    Gesture.PULL: "⏪",
    Gesture.TAP: "👆",
    Gesture.DOUBLE_TAP: "✌",
    Gesture.NOTHING: "·",
}


class ConsoleUI(GestureListener):
    """
    Simple console-based UI for terminal display.

    Shows a live left/right bandwidth bar and prints each gesture.
    """

    def __init__(self, config: Config):
        self.config = config
        self._last_gesture: Optional[Gesture] = None
        self._gesture_display_time = 0.0
        self._counts = {g: 0 for g in Gesture if g != Gesture.NOTHING}

    def update(self, result: CycleResult):
        """Redraw the status line for one cycle."""
        window = self.config.relevant_freq_window
        left = result.reading.left
        right = result.reading.right

        # Left bar grows leftwards from the carrier, right bar rightwards
        half = 20
        left_len = int(left / window * half)
        right_len = int(right / window * half)
        bar = ("░" * (half - left_len) + "█" * left_len + "|"
               + "█" * right_len + "░" * (half - right_len))

        gesture_str = ""
        if self._last_gesture and time.time() - self._gesture_display_time < 2.0:
            g = self._last_gesture
            gesture_str = f" → {_SYMBOLS[g]} {g.value.upper()}"

        status = (f"\r[{bar}] L={left:2d} R={right:2d} "
                  f"ratio={result.max_vol_ratio:.4f}{gesture_str}")
        print(status + " " * 10, end="", flush=True)

    def print_gesture(self, gesture: Gesture):
        """Print gesture detection."""
        if gesture == Gesture.NOTHING:
            return

        self._counts[gesture] += 1
        self._last_gesture = gesture
        self._gesture_display_time = time.time()
        print(f"\n✨ {_SYMBOLS[gesture]} {gesture.value.upper()} "
              f"(#{self._counts[gesture]})")

    def on_push(self):
        self.print_gesture(Gesture.PUSH)

    def on_pull(self):
        self.print_gesture(Gesture.PULL)

    def on_tap(self):
        self.print_gesture(Gesture.TAP)

    def on_double_tap(self):
        self.print_gesture(Gesture.DOUBLE_TAP)

    @property
    def counts(self) -> dict:
        """Gestures seen so far, by type."""
        return dict(self._counts)


class MatplotlibUI(GestureListener):
    """
    Matplotlib-based visualization of the running pipeline.

    Shows:
    - Smoothed spectrum around the carrier bin, with the left/right
      bandwidth edges and the ratio threshold
    - Bandwidth history for both sides
    - Ratio threshold history
    """

    def __init__(self, config: Config, doppler: Doppler):
        self.config = config
        self.doppler = doppler

        self._left_history = deque(maxlen=150)
        self._right_history = deque(maxlen=150)
        self._ratio_history = deque(maxlen=150)

        self._gesture_text = ""
        self._gesture_time = 0.0

        self._fig = None

    def start(self):
        """Start the visualization. Blocks until the window is closed."""
        import matplotlib.pyplot as plt
        from matplotlib.animation import FuncAnimation

        plt.style.use('dark_background')

        self._fig, axes = plt.subplots(3, 1, figsize=(12, 9))
        self._ax_spec, self._ax_bw, self._ax_ratio = axes

        self._fig.suptitle('AirDoppler - Acoustic Gesture Sensing',
                           fontsize=14, fontweight='bold', color='#00ff88')

        self._anim = FuncAnimation(
            self._fig, self._update_plot,
            interval=self.config.ui_update_interval_ms,
            blit=False, cache_frame_data=False
        )

        plt.tight_layout()
        plt.show()

    def show_gesture(self, gesture: Gesture):
        """Display gesture detection overlay."""
        if gesture == Gesture.NOTHING:
            return
        self._gesture_text = f"{_SYMBOLS[gesture]} {gesture.value.upper()}"
        self._gesture_time = time.time()

    def on_push(self):
        self.show_gesture(Gesture.PUSH)

    def on_pull(self):
        self.show_gesture(Gesture.PULL)

    def on_tap(self):
        self.show_gesture(Gesture.TAP)

    def on_double_tap(self):
        self.show_gesture(Gesture.DOUBLE_TAP)

    def _update_plot(self, frame):
        """Update all plots."""
        result = self.doppler.last_result
        spectrum = self.doppler.spectrum()
        primary = self.doppler.primary_bin
        fft = self.doppler.context.fft

        if result is None or spectrum is None or primary is None:
            return

        self._left_history.append(result.reading.left)
        self._right_history.append(result.reading.right)
        self._ratio_history.append(result.max_vol_ratio)

        window = self.config.relevant_freq_window

        # === Spectrum around carrier (normalized to carrier magnitude) ===
        self._ax_spec.clear()
        lo = max(0, primary - window)
        hi = min(len(spectrum), primary + window + 1)
        bins = np.arange(lo, hi)
        freqs = np.array([fft.index_to_freq(int(b)) for b in bins])
        peak = spectrum[primary] if spectrum[primary] > 0 else 1.0
        norm = spectrum[lo:hi] / peak

        self._ax_spec.plot(freqs, norm, color='#00ffff', linewidth=2)
        self._ax_spec.axhline(y=result.max_vol_ratio, color='#ff4444',
                              linestyle='--', alpha=0.7, label='Ratio threshold')
        self._ax_spec.axhline(y=self.config.second_peak_ratio, color='#ffaa00',
                              linestyle=':', alpha=0.7, label='Second peak ratio')

        carrier = fft.index_to_freq(primary)
        self._ax_spec.axvline(x=carrier, color='white', alpha=0.5)
        self._ax_spec.axvspan(fft.index_to_freq(primary - result.reading.left),
                              fft.index_to_freq(primary + result.reading.right),
                              color='#00ff88', alpha=0.15, label='Bandwidth')
        self._ax_spec.set_yscale('log')
        self._ax_spec.set_ylim(1e-4, 2.0)
        self._ax_spec.set_xlabel('Frequency (Hz)', color='#aaa')
        self._ax_spec.set_ylabel('Normalized magnitude', color='#aaa')
        self._ax_spec.set_title(f'Carrier {carrier:.0f} Hz (bin {primary})',
                                color='#00ff88')
        self._ax_spec.legend(loc='upper right', fontsize=8)

        if self._gesture_text and time.time() - self._gesture_time < 2.0:
            self._ax_spec.text(
                0.5, 0.9, self._gesture_text,
                transform=self._ax_spec.transAxes,
                fontsize=24, ha='center', va='top',
                color='#00ff00', fontweight='bold',
                bbox=dict(boxstyle='round', facecolor='#000', alpha=0.8)
            )

        # === Bandwidth history ===
        self._ax_bw.clear()
        x = np.arange(len(self._left_history))
        self._ax_bw.plot(x, list(self._left_history), color='#00ffff',
                         linewidth=2, label='Left')
        self._ax_bw.plot(x, list(self._right_history), color='#ff4488',
                         linewidth=2, label='Right')
        self._ax_bw.axhline(y=self.config.motion_bandwidth, color='#444',
                            linestyle='--', label='Motion')
        self._ax_bw.set_ylim(0, window + 1)
        self._ax_bw.set_ylabel('Bins', color='#aaa')
        self._ax_bw.set_title('Bandwidth', color='#00ff88')
        self._ax_bw.legend(loc='upper right', fontsize=8)

        # === Threshold history ===
        self._ax_ratio.clear()
        self._ax_ratio.plot(np.arange(len(self._ratio_history)),
                            list(self._ratio_history), color='#ff8800')
        self._ax_ratio.set_ylabel('Ratio', color='#aaa')
        self._ax_ratio.set_xlabel('Frame', color='#aaa')
        self._ax_ratio.set_title('Adaptive threshold', color='#00ff88')

        self._fig.canvas.draw_idle()

    def stop(self):
        """Stop visualization."""
        if self._fig:
            import matplotlib.pyplot as plt
            plt.close(self._fig)


def create_ui(config: Config, doppler: Optional[Doppler] = None,
              mode: str = "console"):
    """
    Factory function to create appropriate UI.

    Args:
        config: AirDoppler configuration
        doppler: Running pipeline (required for matplotlib mode)
        mode: "matplotlib" or "console"

    Returns:
        UI instance
    """
    if mode == "matplotlib":
        if doppler is None:
            raise ValueError("matplotlib UI needs a Doppler pipeline")
        return MatplotlibUI(config, doppler)
    return ConsoleUI(config)
