"""Position-based cloth simulation: meshes, colliders, solver, picking and demo scenes."""

__version__ = "0.1.0"
__all__ = ["__version__"]