"""
KaniKani

A terminal client for doing WaniKani lessons and reviews.
"""

from . import answers
from . import romaji
from . import sessions
from . import subjects

__version__ = "0.1.0"
__all__ = ["answers", "romaji", "sessions", "subjects"]
