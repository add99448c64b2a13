"""
LearnFlow - progression engine for the LearnFlow learning platform.

XP ledger, leveling, streaks, achievements and learning-path module
progression with cached lesson content.
"""

__version__ = "1.0.0"
