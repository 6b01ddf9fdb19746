"""Ring geometries for HEALPix, Gauss-Legendre, ECP and Driscoll-Healy grids."""

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass, fields
from typing import Sequence

import torch
from torch import Tensor

from ..errors import ConfigError
from ..logging import log_geometry, log_performance
from .geometry import GeometryAssembler, RingGeometryAssembler
from .quadrature import ecp_weights, gauss_legendre, keiner_potts_weights

_POLE_GUARD = 1e-15


@dataclass
class _RingScratch:
    theta: Tensor | None
    weight: Tensor | None
    nph: Tensor | None
    phi0: Tensor | None
    ofs: Tensor | None
    stride: Tensor | None

    def release(self) -> None:
        for f in fields(self):
            setattr(self, f.name, None)


@contextmanager
def _ring_scratch(nrings: int):
    """Per-ring work arrays, dropped when the builder exits by any path."""
    scratch = _RingScratch(
        theta=torch.empty(nrings, dtype=torch.float64),
        weight=torch.empty(nrings, dtype=torch.float64),
        nph=torch.empty(nrings, dtype=torch.int64),
        phi0=torch.empty(nrings, dtype=torch.float64),
        ofs=torch.empty(nrings, dtype=torch.int64),
        stride=torch.empty(nrings, dtype=torch.int64),
    )
    try:
        yield scratch
    finally:
        scratch.release()


def _assemble(scratch: _RingScratch, assembler: GeometryAssembler):
    return assembler.build(
        scratch.nph,
        scratch.ofs,
        scratch.stride,
        scratch.phi0,
        scratch.theta,
        scratch.weight,
        phi=None,
    )


def _resolve_assembler(
    assembler: GeometryAssembler | None,
    device: torch.device | str | None,
) -> GeometryAssembler:
    if assembler is None:
        return RingGeometryAssembler(device)
    if device is not None:
        raise ConfigError("pass either an assembler or a device, not both")
    return assembler


def _positive_int(name: str, value: int) -> int:
    v = int(value)
    if v <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return v


def _lat_stride(nphi: int, stride_lon: int, stride_lat: int | None) -> int:
    # Default layout stores rings back to back.
    return nphi * stride_lon if stride_lat is None else int(stride_lat)


def _healpix_ring_layout(
    nside: int, stride: int
) -> tuple[list[float], list[int], list[float], list[int], list[int]]:
    """Theta, nphi, phi0, offset and northern mirror ring of every HEALPix ring."""
    npix = 12 * nside * nside
    ncap = 2 * nside * (nside - 1)
    nrings = 4 * nside - 1

    theta: list[float] = []
    nph: list[int] = []
    phi0: list[float] = []
    ofs: list[int] = []
    north: list[int] = []
    for ring in range(1, nrings + 1):
        northring = 4 * nside - ring if ring > 2 * nside else ring
        if northring < nside:
            th = 2.0 * math.asin(northring / (math.sqrt(6.0) * nside))
            n = 4 * northring
            p0 = math.pi / n
            o = 2 * northring * (northring - 1) * stride
        else:
            costheta = (2 * nside - northring) * ((8.0 * nside) / npix)
            th = math.acos(costheta)
            n = 4 * nside
            # Adjacent belt rings are shifted by half a pixel.
            p0 = 0.0 if (northring - nside) & 1 else math.pi / n
            o = (ncap + (northring - nside) * n) * stride
        if northring != ring:
            th = math.pi - th
            o = (npix - n) * stride - o
        theta.append(th)
        nph.append(n)
        phi0.append(p0)
        ofs.append(o)
        north.append(northring)
    return theta, nph, phi0, ofs, north


@log_performance
def make_weighted_healpix_geometry(
    nside: int,
    stride: int,
    weight: Sequence[float] | Tensor,
    *,
    assembler: GeometryAssembler | None = None,
    device: torch.device | str | None = None,
):
    """
    HEALPix RING-scheme geometry with per-iso-latitude weight corrections.

    `weight` has 2*nside entries, one per northern ring including the
    equator; southern rings reuse the entry of their mirror ring. The weight
    of a pixel is its area 4*pi/npix times that correction.

    Returns:
        Whatever `assembler.build` returns (a `RingGeometry` by default).
    """
    nside = _positive_int("nside", nside)
    stride = int(stride)
    user_weight = torch.as_tensor(weight, dtype=torch.float64)
    if user_weight.shape != (2 * nside,):
        raise ConfigError(
            f"weight must have 2*nside={2 * nside} entries, got shape {tuple(user_weight.shape)}"
        )
    if bool(torch.any(~torch.isfinite(user_weight) | (user_weight < 0.0))):
        raise ConfigError("weight entries must be finite and non-negative")
    target = _resolve_assembler(assembler, device)

    nrings = 4 * nside - 1
    npix = 12 * nside * nside
    theta, nph, phi0, ofs, north = _healpix_ring_layout(nside, stride)
    with _ring_scratch(nrings) as s:
        s.theta[:] = torch.tensor(theta, dtype=torch.float64)
        s.nph[:] = torch.tensor(nph, dtype=torch.int64)
        s.phi0[:] = torch.tensor(phi0, dtype=torch.float64)
        s.ofs[:] = torch.tensor(ofs, dtype=torch.int64)
        s.stride.fill_(stride)
        s.weight[:] = (4.0 * math.pi / npix) * user_weight[torch.tensor(north) - 1]
        geom = _assemble(s, target)
    log_geometry("healpix", nrings, npix)
    return geom


def make_healpix_geometry(
    nside: int,
    stride: int = 1,
    *,
    assembler: GeometryAssembler | None = None,
    device: torch.device | str | None = None,
):
    """HEALPix RING-scheme geometry with uniform pixel-area weights."""
    nside = _positive_int("nside", nside)
    return make_weighted_healpix_geometry(
        nside,
        stride,
        torch.ones(2 * nside, dtype=torch.float64),
        assembler=assembler,
        device=device,
    )


@log_performance
def make_gauss_geometry(
    nrings: int,
    nphi: int,
    stride_lon: int = 1,
    stride_lat: int | None = None,
    *,
    assembler: GeometryAssembler | None = None,
    device: torch.device | str | None = None,
):
    """
    Gauss-Legendre grid: rings at the Legendre roots, `nphi` pixels each.

    Ring m has cos(theta) equal to the m-th largest root, so rings run north
    to south. `stride_lat` defaults to `nphi * stride_lon`.
    """
    nrings = _positive_int("nrings", nrings)
    nphi = _positive_int("nphi", nphi)
    stride_lon = int(stride_lon)
    stride_lat = _lat_stride(nphi, stride_lon, stride_lat)
    target = _resolve_assembler(assembler, device)

    with _ring_scratch(nrings) as s:
        nodes, weights = gauss_legendre(nrings)
        m = torch.arange(nrings, dtype=torch.int64)
        s.theta[:] = torch.acos(-nodes)
        s.nph.fill_(nphi)
        s.phi0.zero_()
        s.ofs[:] = m * stride_lat
        s.stride.fill_(stride_lon)
        s.weight[:] = weights * (2.0 * math.pi / nphi)
        geom = _assemble(s, target)
    log_geometry("gauss", nrings, nrings * nphi)
    return geom


@log_performance
def make_ecp_geometry(
    nrings: int,
    nphi: int,
    phi0: float = 0.0,
    stride_lon: int = 1,
    stride_lat: int | None = None,
    *,
    assembler: GeometryAssembler | None = None,
    device: torch.device | str | None = None,
):
    """
    Equidistant cylindrical grid: rings at theta = (m + 1/2) * pi / nrings.

    `nrings` must be even. Weights are the Driscoll-Healy weights of
    half-bandwidth nrings/2, spread over the `nphi` pixels of each ring.
    """
    nrings = _positive_int("nrings", nrings)
    if nrings & 1:
        raise ConfigError(f"Even number of rings needed for equidistant grid, got {nrings}")
    nphi = _positive_int("nphi", nphi)
    stride_lon = int(stride_lon)
    stride_lat = _lat_stride(nphi, stride_lon, stride_lat)
    target = _resolve_assembler(assembler, device)

    with _ring_scratch(nrings) as s:
        m = torch.arange(nrings, dtype=torch.int64)
        s.weight[:] = ecp_weights(nrings // 2) * (2.0 * math.pi / nphi)
        s.theta[:] = (m.to(torch.float64) + 0.5) * math.pi / nrings
        s.nph.fill_(nphi)
        s.phi0.fill_(float(phi0))
        s.ofs[:] = m * stride_lat
        s.stride.fill_(stride_lon)
        geom = _assemble(s, target)
    log_geometry("ecp", nrings, nrings * nphi)
    return geom


@log_performance
def make_driscoll_healy_geometry(
    nrings: int,
    ppring: int,
    phi0: float = 0.0,
    stride_lon: int = 1,
    stride_lat: int | None = None,
    *,
    assembler: GeometryAssembler | None = None,
    device: torch.device | str | None = None,
):
    """
    Equiangular grid including both poles, with Keiner-Potts weights.

    `nrings` must be odd (and at least 3). The pole rings are clamped to
    1e-15 rad inside the poles, so every theta lies strictly in (0, pi).
    """
    nrings = _positive_int("nrings", nrings)
    if (nrings & 1) == 0:
        raise ConfigError(f"nrings must be an odd number, got {nrings}")
    if nrings < 3:
        raise ConfigError("Driscoll-Healy grid needs at least 3 rings")
    ppring = _positive_int("ppring", ppring)
    stride_lon = int(stride_lon)
    stride_lat = _lat_stride(ppring, stride_lon, stride_lat)
    target = _resolve_assembler(assembler, device)

    with _ring_scratch(nrings) as s:
        m = torch.arange(nrings, dtype=torch.int64)
        theta = math.pi * m.to(torch.float64) / (nrings - 1.0)
        s.theta[:] = theta.clamp(min=_POLE_GUARD, max=math.pi - _POLE_GUARD)
        s.nph.fill_(ppring)
        s.phi0.fill_(float(phi0))
        s.ofs[:] = m * stride_lat
        s.stride.fill_(stride_lon)
        s.weight[:] = keiner_potts_weights(nrings, s.nph)
        geom = _assemble(s, target)
    log_geometry("driscoll-healy", nrings, nrings * ppring)
    return geom
