"""headset-battery: wireless headset battery level for status bars."""

__version__ = "0.1.0"
