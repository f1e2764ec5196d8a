"""Unattended video kiosk: weighted channel selection and playback loop."""

__version__ = "0.1.0"
