"""
AirDoppler - Acoustic Doppler Gesture Sensing

Turns the speaker and microphone into a contact-free gesture sensor.
Emits a near-ultrasonic tone, measures how far the received carrier's
energy spreads into neighbouring FFT bins, and classifies hand motion
as push, pull, tap or double tap.
"""

__version__ = "0.1.0"
__author__ = "AirDoppler Project"

from .config import Config
from .segmentation import Gesture, GestureListener
