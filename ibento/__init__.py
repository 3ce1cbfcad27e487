"""Ibento Events API — CRUD service over a MongoDB events collection.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
