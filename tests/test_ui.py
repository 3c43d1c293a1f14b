import pytest

from airdoppler.config import Config
from airdoppler.dsp import BandwidthReading
from airdoppler.engine import CycleResult
from airdoppler.segmentation import Gesture, dispatch_gesture
from airdoppler.ui import ConsoleUI, create_ui


def test_create_ui_defaults_to_console():
    ui = create_ui(Config())
    assert isinstance(ui, ConsoleUI)


def test_matplotlib_ui_needs_pipeline():
    with pytest.raises(ValueError):
        create_ui(Config(), mode="matplotlib")


def test_console_ui_counts_gestures(capsys):
    ui = create_ui(Config())
    for gesture in [Gesture.PUSH, Gesture.NOTHING, Gesture.TAP, Gesture.PUSH]:
        dispatch_gesture(ui, gesture)

    assert ui.counts[Gesture.PUSH] == 2
    assert ui.counts[Gesture.TAP] == 1
    assert ui.counts[Gesture.PULL] == 0
    assert Gesture.NOTHING not in ui.counts
    assert "PUSH (#2)" in capsys.readouterr().out


def test_console_ui_status_line(capsys):
    ui = create_ui(Config())
    result = CycleResult(reading=BandwidthReading(left=3, right=12),
                         gesture=Gesture.NOTHING, max_vol_ratio=0.1)
    ui.update(result)

    out = capsys.readouterr().out
    assert "L= 3 R=12" in out
    assert "ratio=0.1000" in out
