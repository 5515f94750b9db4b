"""
Hangout Planner: group meetup recommendations, enrichment and voting.
"""

__version__ = "1.0.0"
