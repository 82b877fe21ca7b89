"""polywhale - whale order detection on live Polymarket sports books."""

__version__ = "0.1.0"
