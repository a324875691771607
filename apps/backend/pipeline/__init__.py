"""
Opportunity ingestion pipeline.

Turns a submitted URL (or pasted posting text) into a stored opportunity:
structured extraction through a hosted completion service, field merge
with user input, and persistence with URL-level dedup.
"""

__version__ = "0.1.0"
