"""
Utility modules for CineWall.

Cross-cutting concerns:
- Storage: scan store reads and writes
- Retry: backoff policy for external calls
- Text: subject keys and slugs
"""
