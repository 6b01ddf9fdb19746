import logging
import math

import numpy as np
import pytest
import torch

from torchring.errors import ConfigError, ConvergenceError
from torchring.sphere import quadrature
from torchring.sphere.quadrature import ecp_weights, gauss_legendre, keiner_potts_weights


def _monomial_integral(k: int) -> float:
    """Exact value of the integral of x**k over [-1, 1]."""
    return 0.0 if k % 2 else 2.0 / (k + 1)


def _cos_moment(m: int) -> float:
    """Exact value of the integral of cos(m t) sin(t) over [0, pi]."""
    if m == 1:
        return 0.0
    return (1.0 + (-1.0) ** m) / (1.0 - m * m)


def _ecp_reference(bw: int) -> np.ndarray:
    # Weights are the unique solution of the cosine moment system on the
    # 2*bw ring centres (a scaled DCT-II matrix, so well conditioned).
    n = 2 * bw
    theta = (2.0 * np.arange(n) + 1.0) * np.pi / (4.0 * bw)
    a = np.cos(np.outer(np.arange(n), theta))
    b = np.array([_cos_moment(m) for m in range(n)])
    return np.linalg.solve(a, b)


@pytest.mark.parametrize("n", [1, 2, 3, 4, 5, 8, 16, 33, 64, 129])
def test_gauss_legendre_symmetry_and_sum(n: int) -> None:
    x, w = gauss_legendre(n)
    assert x.shape == (n,) and w.shape == (n,)
    assert x.dtype == torch.float64 and w.dtype == torch.float64
    torch.testing.assert_close(x, -x.flip(0), atol=1e-15, rtol=0.0)
    torch.testing.assert_close(w, w.flip(0), atol=0.0, rtol=0.0)
    assert torch.all(w > 0.0)
    assert torch.all((x > -1.0) & (x < 1.0))
    if n > 1:
        assert torch.all(x[1:] > x[:-1])
    assert abs(float(w.sum()) - 2.0) <= 1e-12


@pytest.mark.parametrize("n", [1, 2, 3, 6, 11, 24])
def test_gauss_legendre_exact_for_polynomials(n: int) -> None:
    x, w = gauss_legendre(n)
    for k in range(2 * n):
        got = float((w * x**k).sum())
        assert abs(got - _monomial_integral(k)) <= 1e-12, (n, k)


@pytest.mark.parametrize("n", [2, 7, 20, 100])
def test_gauss_legendre_matches_numpy(n: int) -> None:
    x_ref, w_ref = np.polynomial.legendre.leggauss(n)
    x, w = gauss_legendre(n)
    np.testing.assert_allclose(x.numpy(), x_ref, atol=1e-13, rtol=0.0)
    np.testing.assert_allclose(w.numpy(), w_ref, atol=1e-13, rtol=0.0)


def test_gauss_legendre_order_one() -> None:
    x, w = gauss_legendre(1)
    assert abs(float(x[0])) < 1e-16
    assert float(w[0]) == pytest.approx(2.0, abs=1e-15)


@pytest.mark.parametrize("n", [0, -3])
def test_gauss_legendre_rejects_non_positive_order(n: int) -> None:
    with pytest.raises(ConfigError):
        gauss_legendre(n)


def test_gauss_legendre_reports_non_convergence(monkeypatch) -> None:
    monkeypatch.setattr(quadrature, "_NEWTON_MAX_PASSES", 1)
    with pytest.raises(ConvergenceError):
        gauss_legendre(8)


def test_gauss_legendre_refines_once_after_convergence(monkeypatch, caplog) -> None:
    # Any first step meets a tolerance of 1, so every root stops on pass 2.
    monkeypatch.setattr(quadrature, "_NEWTON_EPS", 1.0)
    caplog.set_level(logging.DEBUG, logger="torchring")
    gauss_legendre(6)
    assert any("converged in 2 passes" in rec.getMessage() for rec in caplog.records)


@pytest.mark.parametrize("bw", [4, 8])
def test_ecp_weights_reference_vectors(bw: int) -> None:
    w = ecp_weights(bw)
    assert w.shape == (2 * bw,)
    np.testing.assert_allclose(w.numpy(), _ecp_reference(bw), atol=1e-12, rtol=0.0)


@pytest.mark.parametrize("bw", [1, 2, 5, 16])
def test_ecp_weights_sum_symmetry_and_exactness(bw: int) -> None:
    w = ecp_weights(bw)
    theta = (2.0 * torch.arange(2 * bw, dtype=torch.float64) + 1.0) * math.pi / (4.0 * bw)
    assert torch.all(w > 0.0)
    torch.testing.assert_close(w, w.flip(0), atol=1e-14, rtol=0.0)
    assert abs(float(w.sum()) - 2.0) <= 1e-12
    for p in range(2 * bw):
        got = float((w * torch.cos(theta) ** p).sum())
        assert abs(got - _monomial_integral(p)) <= 1e-12, (bw, p)


def test_ecp_weights_rejects_bad_bandwidth() -> None:
    with pytest.raises(ConfigError):
        ecp_weights(0)


@pytest.mark.parametrize("nrings", [3, 5, 9, 17, 33])
def test_keiner_potts_weights_integrate_sphere(nrings: int) -> None:
    w = keiner_potts_weights(nrings, 1)
    theta = math.pi * torch.arange(nrings, dtype=torch.float64) / (nrings - 1)
    assert w.shape == (nrings,)
    assert torch.all(w >= 0.0)
    torch.testing.assert_close(w, w.flip(0), atol=1e-14, rtol=0.0)
    assert abs(float(w.sum()) - 4.0 * math.pi) <= 1e-12
    for p in range(nrings - 2):
        got = float((w * torch.cos(theta) ** p).sum())
        assert abs(got - 2.0 * math.pi * _monomial_integral(p)) <= 1e-12, (nrings, p)


def test_keiner_potts_weights_divide_by_pixel_count() -> None:
    base = keiner_potts_weights(7, 1)
    nph = torch.tensor([1, 2, 4, 8, 4, 2, 1])
    torch.testing.assert_close(keiner_potts_weights(7, nph), base / nph.to(torch.float64))
    torch.testing.assert_close(keiner_potts_weights(7, 12), base / 12.0)


@pytest.mark.parametrize("nrings", [1, 2, 4, 0])
def test_keiner_potts_weights_reject_bad_ring_count(nrings: int) -> None:
    with pytest.raises(ConfigError):
        keiner_potts_weights(nrings, 4)


def test_keiner_potts_weights_reject_bad_pixel_counts() -> None:
    with pytest.raises(ConfigError):
        keiner_potts_weights(5, [4, 4, 4])
    with pytest.raises(ConfigError):
        keiner_potts_weights(5, 0)
