"""Infrastructure Layer — database gateway and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Driver exceptions are mapped to ibento.core.errors before leaving this layer
"""
