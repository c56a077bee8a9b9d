"""
Field Simulation Engine
=======================
Superposition solver, heatmap rasterizer and flow-carrier integrator.

Note: This package should be pure Python/NumPy/Numba and should NOT import PySide6.
"""
