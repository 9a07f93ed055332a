"""
Test suite for pebblekit.

Focus areas:
- DAG structure and weights
- Retention bounds (red <= budget, replay gap <= budget)
- Storage integrity and warm recovery
- Decision logs are legal pebblings
"""
