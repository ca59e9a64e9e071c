"""
Scoring components for CineWall.

Pure, deterministic building blocks used by the aggregator:
- Normalizer: any rating scale to 0-100
- Lexicon: keyword-tier sentiment scoring of free text
- Blender: label anchor plus lexicon nuance
"""
