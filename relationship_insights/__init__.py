"""
Relationship insights: analytics over two partners' daily wellness ratings.

Aggregates rating histories, flags discrepancies, measures trends and cycles,
derives psychological-style classifications, and optionally enriches flagged
discrepancies with narrative commentary from an external text service.
"""

__version__ = "0.3.0"
