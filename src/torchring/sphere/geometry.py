"""Ring geometry container and the assembler that builds it."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Protocol

import numpy as np
import torch
from torch import Tensor

from ..errors import ConfigError

_DEFAULT_DEVICE = os.environ.get("TORCHRING_DEVICE", "cpu")


def _float_dtype(device: torch.device) -> torch.dtype:
    return torch.float32 if device.type == "mps" else torch.float64


def resolve_device(device: torch.device | str | None) -> torch.device:
    """Return `device`, or the process default from TORCHRING_DEVICE."""
    return torch.device(_DEFAULT_DEVICE if device is None else device)


class RingDescriptor(NamedTuple):
    """Geometry of a single iso-latitude ring."""

    theta: float
    nphi: int
    phi0: float
    offset: int
    stride: int
    weight: float


@dataclass(frozen=True)
class RingGeometry:
    """
    Column-wise ring descriptors of a sphere pixelization.

    Rings are ordered north to south. `offset` and `stride` locate the pixels
    of each ring in a flat map: pixel k of ring r lives at
    `offset[r] + k * stride[r]`. Weights are per pixel, so
    `sum(nphi * weight)` approximates the area of the unit sphere.
    """

    theta: Tensor
    phi0: Tensor
    nphi: Tensor
    offset: Tensor
    stride: Tensor
    weight: Tensor

    @property
    def nrings(self) -> int:
        return int(self.theta.shape[0])

    @property
    def npix(self) -> int:
        return int(self.nphi.sum().item())

    @property
    def device(self) -> torch.device:
        return self.theta.device

    def __len__(self) -> int:
        return self.nrings

    def ring(self, index: int) -> RingDescriptor:
        if not -self.nrings <= index < self.nrings:
            raise IndexError(f"ring index {index} out of range for {self.nrings} rings")
        return RingDescriptor(
            theta=float(self.theta[index].item()),
            nphi=int(self.nphi[index].item()),
            phi0=float(self.phi0[index].item()),
            offset=int(self.offset[index].item()),
            stride=int(self.stride[index].item()),
            weight=float(self.weight[index].item()),
        )

    def __iter__(self) -> Iterator[RingDescriptor]:
        for r in range(self.nrings):
            yield self.ring(r)

    def ring_pixel_indices(self, index: int) -> Tensor:
        """Flat storage indices of the pixels on ring `index`."""
        d = self.ring(index)
        k = torch.arange(d.nphi, dtype=torch.int64, device=self.device)
        return d.offset + d.stride * k

    def ring_phi(self, index: int) -> Tensor:
        """Longitudes (radians) of the pixels on ring `index`."""
        d = self.ring(index)
        k = torch.arange(d.nphi, dtype=self.theta.dtype, device=self.device)
        return d.phi0 + (2.0 * math.pi / d.nphi) * k

    def pixel_weights(self) -> Tensor:
        """Ring weights repeated once per pixel, in ring order."""
        return torch.repeat_interleave(self.weight, self.nphi)

    def pixel_indices(self) -> Tensor:
        """Flat storage indices of all pixels, in ring order."""
        if self.nrings == 0:
            return torch.empty(0, dtype=torch.int64, device=self.device)
        return torch.cat([self.ring_pixel_indices(r) for r in range(self.nrings)])

    def integrate(self, values: Tensor) -> Tensor:
        """
        Quadrature sum of a flat map over the sphere.

        `values` holds the pixels along its last axis, addressed through the
        ring offsets and strides; leading axes are treated as a batch.
        """
        v = torch.as_tensor(values, device=self.device)
        idx = self.pixel_indices()
        if idx.numel() > 0:
            lo = int(idx.min().item())
            hi = int(idx.max().item())
            if lo < 0 or hi >= v.shape[-1]:
                raise ValueError(
                    f"map of length {v.shape[-1]} does not cover pixel indices [{lo}, {hi}]"
                )
        samples = v.index_select(-1, idx)
        w = self.pixel_weights()
        if samples.is_floating_point():
            w = w.to(samples.dtype)
        return (samples * w).sum(dim=-1)

    def numpy(self) -> dict[str, np.ndarray]:
        """Host copies of the ring arrays, keyed like the fields."""
        return {
            "theta": self.theta.detach().cpu().numpy(),
            "phi0": self.phi0.detach().cpu().numpy(),
            "nphi": self.nphi.detach().cpu().numpy(),
            "offset": self.offset.detach().cpu().numpy(),
            "stride": self.stride.detach().cpu().numpy(),
            "weight": self.weight.detach().cpu().numpy(),
        }

    def to(self, device: torch.device | str) -> "RingGeometry":
        dev = torch.device(device)
        f_dtype = _float_dtype(dev)
        return RingGeometry(
            theta=self.theta.to(device=dev, dtype=f_dtype),
            phi0=self.phi0.to(device=dev, dtype=f_dtype),
            nphi=self.nphi.to(device=dev),
            offset=self.offset.to(device=dev),
            stride=self.stride.to(device=dev),
            weight=self.weight.to(device=dev, dtype=f_dtype),
        )


class GeometryAssembler(Protocol):
    """Anything that turns per-ring arrays into a geometry handle."""

    def build(
        self,
        nph: Tensor,
        ofs: Tensor,
        stride: Tensor,
        phi0: Tensor,
        theta: Tensor,
        weight: Tensor,
        *,
        phi: Tensor | None = None,
    ): ...


class RingGeometryAssembler:
    """Validate per-ring arrays and copy them into a `RingGeometry`."""

    def __init__(self, device: torch.device | str | None = None):
        self.device = resolve_device(device)

    def build(
        self,
        nph: Tensor,
        ofs: Tensor,
        stride: Tensor,
        phi0: Tensor,
        theta: Tensor,
        weight: Tensor,
        *,
        phi: Tensor | None = None,
    ) -> RingGeometry:
        # `phi` (explicit per-pixel longitudes) is accepted for interface
        # compatibility; the ring layout is fully described by phi0 and nphi.
        arrays = {
            "nph": nph,
            "ofs": ofs,
            "stride": stride,
            "phi0": phi0,
            "theta": theta,
            "weight": weight,
        }
        nrings = None
        for name, arr in arrays.items():
            if arr.ndim != 1:
                raise ConfigError(f"{name} must be a 1D array")
            if nrings is None:
                nrings = int(arr.shape[0])
            elif int(arr.shape[0]) != nrings:
                raise ConfigError(
                    f"{name} has {arr.shape[0]} entries, expected {nrings} (one per ring)"
                )
        if not nrings:
            raise ConfigError("geometry needs at least one ring")

        theta64 = theta.to(torch.float64)
        weight64 = weight.to(torch.float64)
        if bool(torch.any(~torch.isfinite(theta64) | (theta64 <= 0.0) | (theta64 >= math.pi))):
            raise ConfigError("theta must lie strictly inside (0, pi)")
        if bool(torch.any(nph <= 0)):
            raise ConfigError("pixel counts must be positive")
        if bool(torch.any(~torch.isfinite(weight64) | (weight64 < 0.0))):
            raise ConfigError("weights must be finite and non-negative")

        geom = RingGeometry(
            theta=theta64.clone(),
            phi0=phi0.to(torch.float64).clone(),
            nphi=nph.to(torch.int64).clone(),
            offset=ofs.to(torch.int64).clone(),
            stride=stride.to(torch.int64).clone(),
            weight=weight64.clone(),
        )
        if self.device.type != "cpu":
            geom = geom.to(self.device)
        return geom
