#!/usr/bin/env python3
"""Example of building sphere ring geometries with torchring.

This example demonstrates:
1. Building HEALPix, Gauss-Legendre, ECP and Driscoll-Healy geometries.
2. Checking that each quadrature integrates the unit sphere to 4*pi.
3. Integrating a band-limited field on the Gauss-Legendre grid.
"""

import math

import torch
import torchring


def main():
    print("Ring geometries and their total area (expected 4*pi = "
          f"{4.0 * math.pi:.12f})")

    # 1. One geometry per grid family
    geometries = {
        "healpix nside=16": torchring.make_healpix_geometry(16),
        "gauss 32x63": torchring.make_gauss_geometry(32, 63),
        "ecp 32x64": torchring.make_ecp_geometry(32, 64),
        "driscoll-healy 33x64": torchring.make_driscoll_healy_geometry(33, 64),
    }

    # 2. Sum of nphi * weight over all rings
    for name, geom in geometries.items():
        area = (geom.nphi.to(torch.float64) * geom.weight).sum().item()
        print(f"  {name:<22} nrings={geom.nrings:<4} npix={geom.npix:<6} area={area:.12f}")

    # 3. Integrate cos(theta)**6 on the Gauss grid; exact value is 4*pi/7
    geom = geometries["gauss 32x63"]
    theta = torch.repeat_interleave(geom.theta, geom.nphi)
    field = torch.cos(theta) ** 6
    value = geom.integrate(field).item()
    print("\nIntegral of cos(theta)^6 on the Gauss grid:")
    print(f"  quadrature: {value:.15f}")
    print(f"  exact:      {4.0 * math.pi / 7.0:.15f}")

    # Ring descriptors are available one at a time too
    first = geom.ring(0)
    print(f"\nFirst Gauss ring: theta={first.theta:.6f} rad, nphi={first.nphi}, "
          f"weight={first.weight:.6e}")


if __name__ == "__main__":
    main()
