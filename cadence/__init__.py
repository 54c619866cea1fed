"""
Cadence - spaced-repetition scheduling core.

Packages:
- core: schedule model, lifecycle transitions, errors
- scheduler: FSRS parameters, update rules, normalization, fitting helpers
- study: eligibility, prioritization, interleaving, sessions, boosts
- semantic: similarity index collaborators
- graph: concept prerequisite graph
"""

__version__ = "1.0.0"
