"""
Patissier progress engine.

Tracks module and path progress for the pastry-learning platform, gates
content behind prerequisites, and derives streaks, achievements and
recommendations from that state.
"""

__version__ = "1.0.0"
