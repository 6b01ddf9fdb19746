"""Ring geometries and quadrature rules for sampling fields on the sphere."""

from .geometry import (
    GeometryAssembler,
    RingDescriptor,
    RingGeometry,
    RingGeometryAssembler,
)
from .grids import (
    make_driscoll_healy_geometry,
    make_ecp_geometry,
    make_gauss_geometry,
    make_healpix_geometry,
    make_weighted_healpix_geometry,
)
from .quadrature import ecp_weights, gauss_legendre, keiner_potts_weights

__all__ = [
    "GeometryAssembler",
    "RingDescriptor",
    "RingGeometry",
    "RingGeometryAssembler",
    "make_driscoll_healy_geometry",
    "make_ecp_geometry",
    "make_gauss_geometry",
    "make_healpix_geometry",
    "make_weighted_healpix_geometry",
    "ecp_weights",
    "gauss_legendre",
    "keiner_potts_weights",
]
