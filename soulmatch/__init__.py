"""
Soul Matching Core

This package scores, learns and ranks compatibility between a user and a
pool of candidates for a matchmaking product.

Key Design Decisions:
- Compatibility is an explainable weighted average of per-factor sub-scores
- Veto criteria dominate every other signal (a violation scores exactly 0)
- Per-attribute importance is learned online from user reactions and stored
  as immutable per-user snapshots with a single writer per user
- Ranking blends personality and factual sub-scores and diversifies near-ties
- No network or disk I/O in the core; collaborators are resolved by the caller
"""

__version__ = "1.0.0"
