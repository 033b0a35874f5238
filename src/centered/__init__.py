"""Centered - period analysis for journaling check-ins."""

try:
    from importlib.metadata import version

    __version__ = version("centered")
except Exception:
    __version__ = "0.0.0+unknown"
