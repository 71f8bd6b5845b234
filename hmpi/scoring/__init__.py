"""Heavy Metal Pollution Index scoring engine.

Per-metal quality ratings, weighted aggregation and risk banding over
versioned standards, weights and band tables.

Deterministic -- no I/O.
"""
