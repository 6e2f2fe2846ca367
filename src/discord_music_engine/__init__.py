"""Per-guild music playback engine for Discord bots."""

__version__ = "0.1.0"
