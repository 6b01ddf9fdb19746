"""
torchring: sphere pixelization geometries for PyTorch

This module builds per-ring geometry (colatitude, pixel count, longitude
offset, storage layout and quadrature weight) for HEALPix, Gauss-Legendre,
equidistant cylindrical and Driscoll-Healy grids, as consumed by spherical
harmonic transform engines.
"""

from .errors import ConfigError, ConvergenceError, TorchRingError
from .logging import set_log_level
from .sphere import (
    GeometryAssembler,
    RingDescriptor,
    RingGeometry,
    RingGeometryAssembler,
    ecp_weights,
    gauss_legendre,
    keiner_potts_weights,
    make_driscoll_healy_geometry,
    make_ecp_geometry,
    make_gauss_geometry,
    make_healpix_geometry,
    make_weighted_healpix_geometry,
)

__version__ = "0.1.0"
__all__ = [
    # Grid builders
    "make_healpix_geometry", "make_weighted_healpix_geometry",
    "make_gauss_geometry", "make_ecp_geometry", "make_driscoll_healy_geometry",
    # Quadrature rules
    "gauss_legendre", "ecp_weights", "keiner_potts_weights",
    # Geometry containers
    "RingGeometry", "RingDescriptor", "GeometryAssembler", "RingGeometryAssembler",
    # Errors
    "TorchRingError", "ConfigError", "ConvergenceError",
    # Utility functions
    "set_log_level",
]
