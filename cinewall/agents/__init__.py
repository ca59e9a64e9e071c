"""
Agent implementations for CineWall.

Contains the modules that carry scans from the store to a consensus view:
- Ingestion Agent
- Record Grouper
- Per-Subject Aggregator
- Metadata Enrichment Agent
- Consensus Narrative Generator
- Wall table export
"""
