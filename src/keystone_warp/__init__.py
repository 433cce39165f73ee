"""Keystone correction by piecewise-affine mesh warping."""

__version__ = "0.1.0"
