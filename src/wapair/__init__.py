"""wapair - link a WhatsApp multi-device session from a web page."""

__version__ = "0.3.0"
