import pytest
import numpy as np
import trimesh
from lapy import TriaMesh
from neuralwaves.eigen import EigenBasis, check_surf, check_orthonorm_modes, standardize_modes
from neuralwaves.validation import DimensionMismatchError

@pytest.fixture(scope="module")
def sphere():
    return trimesh.creation.icosphere(subdivisions=2)

@pytest.fixture(scope="module")
def sphere_basis(sphere):
    return EigenBasis.from_surface(sphere, n_modes=10)

def test_from_surface(sphere, sphere_basis):

    assert sphere_basis.n_verts == sphere.vertices.shape[0]
    assert sphere_basis.n_modes == 10
    assert sphere_basis.emodes.shape == (sphere.vertices.shape[0], 10)

    # First mode is constant with zero eigenvalue
    assert sphere_basis.evals[0] == 0
    assert np.allclose(sphere_basis.emodes[:, 0], sphere_basis.emodes[0, 0])
    assert np.all(np.diff(sphere_basis.evals) >= -1e-8)

    # Unit sphere: l = 1 eigenvalues are l * (l + 1) = 2
    assert np.allclose(sphere_basis.evals[1:4], 2, rtol=0.05)

def test_from_surface_mass_orthonormal(sphere_basis):

    mass = sphere_basis.mass
    prod = sphere_basis.emodes.T @ (mass @ sphere_basis.emodes)

    assert np.allclose(prod, np.eye(10), atol=1e-3)

def test_from_surface_standardized(sphere_basis):

    emodes = sphere_basis.emodes
    first = emodes[np.argmax(emodes != 0, axis=0), np.arange(emodes.shape[1])]

    assert np.all(first > 0)

def test_from_surface_triamesh(sphere):

    basis = EigenBasis.from_surface(TriaMesh(sphere.vertices, sphere.faces), n_modes=4)

    assert basis.emodes.shape == (sphere.vertices.shape[0], 4)

def test_from_surface_medmask(sphere):

    medmask = np.ones(sphere.vertices.shape[0], dtype=bool)
    medmask[0] = False
    basis = EigenBasis.from_surface(sphere, n_modes=4, medmask=medmask)

    assert basis.n_verts == sphere.vertices.shape[0] - 1

    with pytest.raises(ValueError, match="The number of elements in `medmask`.*"):
        EigenBasis.from_surface(sphere, n_modes=4, medmask=medmask[1:])

def test_from_surface_too_many_modes():

    with pytest.raises(ValueError, match="`n_modes` .* must not exceed.*"):
        EigenBasis.from_surface(trimesh.creation.icosphere(subdivisions=0), n_modes=20)

def test_check_surf_invalid():

    with pytest.raises(ValueError, match="Surface must be a path-like string.*"):
        check_surf("not_a_surface.gii")

def test_basis_is_read_only():

    emodes = np.eye(4)[:, :2]
    basis = EigenBasis(emodes, [0.0, 1.0])

    with pytest.raises(ValueError):
        basis.emodes[0, 0] = 5.0
    with pytest.raises(AttributeError):
        basis.evals = np.zeros(2)

    # The caller's array is left writable
    emodes[0, 0] = 5.0

def test_basis_invalid_inputs():

    with pytest.raises(DimensionMismatchError, match=r"The number of eigenvalues \(3\).*"):
        EigenBasis(np.eye(4)[:, :2], [0.0, 1.0, 2.0])
    with pytest.raises(ValueError, match=".*must not contain NaNs or Infs."):
        EigenBasis(np.full((4, 2), np.nan), [0.0, 1.0])
    with pytest.raises(ValueError, match=r"The number of eigenmodes \(3\) must not exceed.*"):
        EigenBasis(np.ones((2, 3)), [0.0, 1.0, 2.0], check_orthonorm=False)
    with pytest.raises(DimensionMismatchError, match="Mass matrix has shape.*"):
        EigenBasis(np.eye(4)[:, :2], [0.0, 1.0], mass=np.eye(3))

def test_check_orthonorm_modes_warns():

    with pytest.warns(UserWarning, match="Eigenmodes are not orthonormal."):
        check_orthonorm_modes(np.ones((4, 2)))
    with pytest.warns(UserWarning, match="Eigenmodes are not mass-orthonormal."):
        check_orthonorm_modes(np.eye(4)[:, :2], mass=2 * np.eye(4))

def test_standardize_modes():

    emodes = np.array([[0.0, -1.0], [-2.0, 3.0]])

    assert np.array_equal(standardize_modes(emodes), [[0.0, 1.0], [2.0, -3.0]])

def test_basis_simulate_waves(sphere_basis):

    out = sphere_basis.simulate_waves(nt=100, dt=1e-4, pde_method='fourier', seed=0)

    assert out.shape == (sphere_basis.n_verts, 100)
    assert np.all(np.isfinite(out))

def test_basis_simulate_waves_uses_mass(sphere_basis):

    ext_input = np.tile(sphere_basis.emodes[:, [1]], (1, 20))
    t = np.linspace(0, 2e-3, 20)

    projected = sphere_basis.simulate_waves(ext_input, t=t, pde_method='fourier')
    regressed = sphere_basis.simulate_waves(ext_input, t=t, pde_method='fourier',
                                            decomp_method='regress')

    # Input lies in the span of the modes, so both projections agree
    assert np.allclose(projected, regressed, atol=1e-6)
