"""CineMatch backend: movie matching, chat rooms and live notifications."""

__version__ = "0.1.0"
