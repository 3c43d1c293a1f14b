"""
Error types for AirDoppler.
"""


class DeviceUnavailable(Exception):
    """Capture or playback device could not be acquired or started."""

    def __init__(self, device: str, reason: str = ""):
        self.device = device
        self.reason = reason
        message = f"{device} unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message)
