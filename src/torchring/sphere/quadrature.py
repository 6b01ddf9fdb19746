"""Quadrature rules for iso-latitude ring grids.

All rules are evaluated in float64 on the CPU and returned as 1D tensors.

- `gauss_legendre`: Gauss-Legendre nodes and weights on [-1, 1], obtained by
  Newton iteration on the Legendre recurrence (adapted from GSL glfixed.c).
- `ecp_weights`: closed-form Driscoll-Healy weights for an equidistant
  cylindrical grid with ring centres at (j + 1/2) * pi / (4 bw).
- `keiner_potts_weights`: Clenshaw-Curtis type weights (Keiner & Potts,
  "Fast evaluation of quadrature formulae on the sphere", 2000) for an
  equiangular grid that includes both poles.
"""

from __future__ import annotations

import math
from typing import Sequence

import torch
from torch import Tensor

from ..errors import ConfigError, ConvergenceError
from ..logging import log_errors, logger

_NEWTON_EPS = 3e-14
_NEWTON_MAX_PASSES = 100


def _legendre_pair(x: Tensor, n: int) -> tuple[Tensor, Tensor]:
    """Return (P_n(x), P_{n-1}(x)) via the three-term recurrence."""
    p_prev = torch.ones_like(x)
    p_cur = x.clone()
    for k in range(2, n + 1):
        p_prev2 = p_prev
        p_prev = p_cur
        p_cur = x * p_prev + ((k - 1.0) / k) * (x * p_prev - p_prev2)
    return p_cur, p_prev


@log_errors
def gauss_legendre(n: int) -> tuple[Tensor, Tensor]:
    """
    Gauss-Legendre nodes and weights of order `n`.

    Nodes are returned in ascending order on (-1, 1). The rule integrates
    polynomials of degree <= 2n-1 exactly and its weights sum to 2.

    Only the ceil(n/2) non-negative roots are iterated; the others follow by
    antisymmetry. Every root runs its own Newton sequence and is refined once
    more after the step size first drops below tolerance.

    Raises:
        ConfigError: `n < 1`.
        ConvergenceError: a root needed more than 100 Newton passes.
    """
    n = int(n)
    if n < 1:
        raise ConfigError(f"Gauss-Legendre order must be positive, got {n}")

    m = (n + 1) >> 1
    t0 = 1.0 - (1.0 - 1.0 / n) / (8.0 * n * n)
    t1 = 1.0 / (4.0 * n + 2.0)

    i = torch.arange(1, m + 1, dtype=torch.float64)
    x = torch.cos(math.pi * (4.0 * i - 1.0) * t1) * t0
    dpdx = torch.zeros_like(x)

    pending = torch.ones(m, dtype=torch.bool)
    # Roots whose last step met the tolerance; they get exactly one more pass.
    settled = torch.zeros(m, dtype=torch.bool)
    passes = 0
    while bool(pending.any()):
        idx = pending.nonzero(as_tuple=True)[0]
        x0 = x.index_select(0, idx)
        p_n, p_n1 = _legendre_pair(x0, n)
        d = (x0 * p_n - p_n1) * n / (x0 * x0 - 1.0)
        x1 = x0 - p_n / d
        dx = x0 - x1
        x[idx] = x1
        dpdx[idx] = d

        final = settled.index_select(0, idx)
        pending[idx[final]] = False
        live = idx[~final]
        settled[live] = torch.abs(dx[~final]) <= _NEWTON_EPS
        passes += 1
        if live.numel() > 0 and passes >= _NEWTON_MAX_PASSES:
            raise ConvergenceError(
                f"Gauss-Legendre Newton iteration did not converge for n={n} "
                f"({live.numel()} roots unresolved after {passes} passes)"
            )
    logger.debug(f"gauss_legendre(n={n}) converged in {passes} passes")

    w = 2.0 / ((1.0 - x * x) * dpdx * dpdx)
    nodes = torch.empty(n, dtype=torch.float64)
    weights = torch.empty(n, dtype=torch.float64)
    nodes[:m] = -x
    weights[:m] = w
    # For odd n the middle root is written last, with the positive value.
    nodes[n - m:] = x.flip(0)
    weights[n - m:] = w.flip(0)
    return nodes, weights


@log_errors
def ecp_weights(bw: int) -> Tensor:
    """
    Quadrature weights for 2*bw equidistant rings at theta_j = (2j+1)*pi/(4bw).

    The weights integrate f(theta) sin(theta) over [0, pi] exactly for
    polynomials in cos(theta) of degree <= 2bw-1, and sum to 2.
    """
    bw = int(bw)
    if bw < 1:
        raise ConfigError(f"half-bandwidth must be positive, got {bw}")
    fudge = math.pi / (4 * bw)
    odd_j = 2.0 * torch.arange(2 * bw, dtype=torch.float64) + 1.0
    odd_k = 2.0 * torch.arange(bw, dtype=torch.float64) + 1.0
    series = (torch.sin(torch.outer(odd_j, odd_k) * fudge) / odd_k).sum(dim=1)
    return series * torch.sin(odd_j * fudge) * (2.0 / bw)


def _endpoint_factor(j: Tensor, J: int) -> Tensor:
    """Trapezoid endpoint factor: 0.5 at 0 and J, 1 strictly inside, else 0."""
    inside = ((j > 0) & (j < J)).to(torch.float64)
    ends = ((j == 0) | (j == J)).to(torch.float64)
    return inside + 0.5 * ends


@log_errors
def keiner_potts_weights(nrings: int, nphi: int | Sequence[int] | Tensor) -> Tensor:
    """
    Per-pixel weights of an odd-count equiangular grid with pole rings.

    Ring m sits at theta = pi * m / (nrings - 1). `nphi` is either a single
    pixel count or one count per ring; each ring weight is divided by it so
    that sum(nphi * weight) approximates the surface integral.
    """
    nrings = int(nrings)
    if nrings < 3 or (nrings & 1) == 0:
        raise ConfigError(f"Keiner-Potts weights need an odd ring count >= 3, got {nrings}")
    lmax = (nrings - 1) // 2

    nph = torch.as_tensor(nphi, dtype=torch.float64)
    if nph.ndim == 0:
        nph = nph.expand(nrings)
    if nph.shape != (nrings,):
        raise ConfigError("nphi must be a scalar or have one entry per ring")
    if bool(torch.any(nph <= 0)):
        raise ConfigError("pixel counts must be positive")

    m = torch.arange(nrings, dtype=torch.float64)
    ell = torch.arange(lmax + 1, dtype=torch.float64)
    coef = _endpoint_factor(ell, lmax) / (1.0 - 4.0 * ell * ell)
    series = (coef * torch.cos(math.pi * torch.outer(m, ell) / lmax)).sum(dim=1)
    prefac = 4.0 * math.pi * _endpoint_factor(m, 2 * lmax) / lmax
    return prefac * series / nph
