#!/usr/bin/env python3
"""
AirDoppler - Acoustic Doppler Gesture Sensing

Detects push, pull, tap and double-tap hand gestures near the computer
using a near-ultrasonic tone and the Doppler spread of its reflection.
Uses only the built-in speaker and microphone.

Usage:
    python main.py diagnose       # Check audio hardware
    python main.py scan           # Lock and report the carrier bin
    python main.py detect         # Gesture detection mode
    python main.py visualize      # Live carrier band view

Author: AirDoppler Project
License: MIT
"""

import argparse
import sys
import time

from airdoppler import Config
from airdoppler.engine import Doppler
from airdoppler.ui import create_ui


def config_from_args(args) -> Config:
    return Config(
        prelim_freq=args.freq,
        tone_amplitude=args.amplitude,
        buffer_size=args.buffer_size,
        verbose=args.verbose,
    )


def cmd_diagnose(args):
    """Run hardware diagnostics."""
    from airdoppler.diagnostic import run_all_diagnostics

    ok = run_all_diagnostics(config_from_args(args))
    sys.exit(0 if ok else 1)


def cmd_scan(args):
    """Play the tone and lock the carrier bin once."""
    config = config_from_args(args)

    print("\n" + "=" * 60)
    print("  AirDoppler - Carrier Scan")
    print("=" * 60)
    print(f"\nSearching {config.min_freq:,.0f}-{config.max_freq:,.0f} Hz for the "
          f"strongest received tone.")
    print(f"Capture {config.buffer_size} samples, "
          f"{config.freq_resolution:.2f} Hz per bin.")
    print("\nKeep hands away from the computer during the scan.\n")

    doppler = Doppler(config)
    if not doppler.start():
        print("Could not open audio devices. Try: python main.py diagnose")
        sys.exit(1)

    try:
        # Wait for the settling delay and the optimization
        while doppler.primary_bin is None and doppler.is_running:
            time.sleep(0.1)
        time.sleep(args.duration)
        result = doppler.last_result
    finally:
        doppler.pause()

    fft = doppler.context.fft
    primary = doppler.primary_bin
    if primary is None:
        print("Carrier scan did not complete.")
        sys.exit(1)

    print("\n" + "-" * 60)
    print(f"✓ Carrier locked at bin {primary} "
          f"({fft.index_to_freq(primary):,.1f} Hz, {fft.band_width:.2f} Hz/bin)")
    if result is not None:
        print(f"  Idle bandwidth: left={result.reading.left} right={result.reading.right}")
        print(f"  Ratio threshold: {result.max_vol_ratio:.4f}")


def cmd_detect(args):
    """Gesture detection mode."""
    config = config_from_args(args)

    print("\n" + "=" * 60)
    print("  AirDoppler - Gesture Detection")
    print("=" * 60)
    print(f"\nTone: {config.prelim_freq:,.0f} Hz "
          f"(search {config.min_freq:,.0f}-{config.max_freq:,.0f} Hz)")
    print("\nDetecting PUSH, PULL, TAP and DOUBLE TAP...")
    print("Press Ctrl+C to exit.\n")

    ui = create_ui(config)
    doppler = Doppler(config, listener=ui)

    if not doppler.start():
        print("Could not open audio devices. Try: python main.py diagnose")
        sys.exit(1)

    try:
        last = None
        while doppler.is_running:
            time.sleep(config.cycle_duration)
            result = doppler.last_result
            if result is not None and result is not last:
                ui.update(result)
                last = result
    except KeyboardInterrupt:
        print("\n\nStopping...")
    finally:
        doppler.pause()

    print("\nGestures detected:")
    for gesture, count in ui.counts.items():
        print(f"  {gesture.value:<12} {count}")


def cmd_visualize(args):
    """Real-time visualization mode."""
    config = config_from_args(args)

    print("\n" + "=" * 60)
    print("  AirDoppler - Real-time Visualization")
    print("=" * 60)
    print("\nShowing the carrier band and bandwidth readings.")
    print("Move your hand towards and away from the computer!")
    print("\nClose window or Ctrl+C to exit.\n")

    doppler = Doppler(config)
    ui = create_ui(config, doppler, mode="matplotlib")
    doppler.set_gesture_listener(ui)

    if not doppler.start():
        print("Could not open audio devices. Try: python main.py diagnose")
        sys.exit(1)

    try:
        ui.start()
    except KeyboardInterrupt:
        pass
    finally:
        doppler.pause()


def main():
    parser = argparse.ArgumentParser(
        description="AirDoppler - Acoustic Doppler Gesture Sensing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py diagnose                  # Check speaker and microphone
    python main.py scan                      # Lock the carrier bin
    python main.py detect                    # Detect gestures
    python main.py detect --verbose          # ...with bandwidth logging
    python main.py visualize --freq 19500    # Live view, lower tone
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # Common arguments
    def add_common_args(p):
        p.add_argument('--freq', type=float, default=20000,
                       help='Tone frequency in Hz (default: 20000)')
        p.add_argument('--amplitude', type=float, default=1.0,
                       help='Tone amplitude 0-1 (default: 1.0)')
        p.add_argument('--buffer-size', type=int, default=4096,
                       help='Samples per analysis cycle (default: 4096)')
        p.add_argument('--verbose', action='store_true',
                       help='Log bandwidth readings and threshold changes')

    # Diagnose command
    p_diag = subparsers.add_parser('diagnose', help='Check audio hardware')
    add_common_args(p_diag)

    # Scan command
    p_scan = subparsers.add_parser('scan', help='Lock and report the carrier bin')
    add_common_args(p_scan)
    p_scan.add_argument('--duration', type=float, default=2.0,
                        help='Seconds to run after locking (default: 2.0)')

    # Detect command
    p_detect = subparsers.add_parser('detect', help='Gesture detection')
    add_common_args(p_detect)

    # Visualize command
    p_viz = subparsers.add_parser('visualize', help='Real-time visualization')
    add_common_args(p_viz)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    # Dispatch
    commands = {
        'diagnose': cmd_diagnose,
        'scan': cmd_scan,
        'detect': cmd_detect,
        'visualize': cmd_visualize,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
