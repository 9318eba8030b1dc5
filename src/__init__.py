"""Live score following - source package.

- score_following: online alignment of live audio to a reference recording
"""

from . import score_following

__all__ = ["score_following"]
