"""
agents package

Submodules are not imported at package import time so that tests can import
a single agent without pulling in the whole graph. Import agents directly, e.g.:

    from hangout.agents.itinerary_scorer import ItineraryScorer
"""

__all__: list[str] = []
