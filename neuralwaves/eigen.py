import warnings
import numpy as np
import nibabel as nib
import trimesh
from lapy import Solver, TriaMesh
from scipy.sparse import issparse
from neuralwaves.waves import simulate_waves
from neuralwaves.validation import (DimensionMismatchError, check_basis, check_normalised_vectors,
                                    check_orthogonal_vectors)

class EigenBasis:
    """
    Fixed pair of spatial eigenmodes and eigenvalues describing the structure of a surface.

    The modes are typically eigenfunctions of the Laplace-Beltrami operator of a cortical mesh, and
    the eigenvalues enter the wave model as a stiffness term for each mode. Arrays are copied and
    made read-only on construction, so a basis can be shared between simulations.
    """

    def __init__(self, emodes, evals, mass=None, check_orthonorm=True):
        """
        Initialize the EigenBasis class.

        Parameters
        ----------
        emodes : array-like
            The eigenmodes array of shape (n_verts, n_modes), one mode per column.
        evals : array-like
            The eigenvalues array of shape (n_modes,), in the same order as the columns of
            `emodes`.
        mass : array-like or scipy.sparse matrix, optional
            The mass matrix of shape (n_verts, n_verts) of the discretized surface. Default is
            None.
        check_orthonorm : bool, optional
            If True, warn when the eigenmodes are not (mass-)orthonormal. Default is True. See the
            check_orthonorm_modes function for details.

        Raises
        ------
        ValueError
            If the arrays contain NaNs or Infs, or there are more modes than vertices.
        DimensionMismatchError
            If the shapes of `emodes`, `evals` and `mass` are inconsistent.
        """
        emodes, evals = check_basis(emodes, evals)
        n_verts = emodes.shape[0]
        if mass is not None:
            if not issparse(mass):
                mass = np.array(mass, dtype=float)
            if mass.shape != (n_verts, n_verts):
                raise DimensionMismatchError(f"Mass matrix has shape {mass.shape}, should be "
                                             f"({n_verts}, {n_verts}).")
        if check_orthonorm:
            check_orthonorm_modes(emodes, mass)

        self._emodes = np.array(emodes)
        self._emodes.setflags(write=False)
        self._evals = np.array(evals)
        self._evals.setflags(write=False)
        self._mass = mass

    @property
    def emodes(self):
        return self._emodes

    @property
    def evals(self):
        return self._evals

    @property
    def mass(self):
        return self._mass

    @property
    def n_verts(self):
        return self._emodes.shape[0]

    @property
    def n_modes(self):
        return self._emodes.shape[1]

    def __repr__(self):
        return f"EigenBasis(n_verts={self.n_verts}, n_modes={self.n_modes})"

    @classmethod
    def from_surface(cls, surf, n_modes=100, medmask=None, lump=False, normalize=False,
                     standardize=True, fix_mode1=True, verbose=False):
        """
        Compute the eigenbasis of the Laplace-Beltrami operator of a triangular surface mesh.

        The operator is discretized with the Finite Element Method by `lapy`, giving stiffness and
        mass matrices, and the generalized eigenvalue problem is solved for the lowest modes.

        Parameters
        ----------
        surf : str, pathlib.Path, trimesh.Trimesh or lapy.TriaMesh
            The surface mesh to be used, or a path to a .vtk or GIFTI surface file.
        n_modes : int, optional
            Number of eigenmodes to compute. Default is 100.
        medmask : numpy.ndarray, optional
            A boolean mask to exclude certain points (e.g., medial wall) from the surface mesh.
            Default is None.
        lump : bool, optional
            Whether to use a lumped mass matrix. Default is False.
        normalize : bool, optional
            Whether to normalize the surface mesh to unit area. Default is False.
        standardize : bool, optional
            If True, flips the sign of the eigenmodes so the first nonzero element is positive.
            Default is True.
        fix_mode1 : bool, optional
            If True, sets the first eigenmode to a constant value and the first eigenvalue to zero.
            Default is True.
        verbose : bool, optional
            Whether to print progress messages. Default is False.

        Returns
        -------
        EigenBasis
            The computed eigenbasis, with the mass matrix attached.

        Raises
        ------
        ValueError
            If the surface or mask is invalid, or the eigenvalues contain NaNs.
        """
        surf = check_surf(surf)
        if medmask is not None:
            surf = mask_surf(surf, medmask)
        geometry = TriaMesh(surf.vertices, surf.faces)
        if normalize:
            geometry.normalize_()
        n_verts = surf.vertices.shape[0]
        if n_modes > n_verts:
            raise ValueError(f"`n_modes` ({n_modes}) must not exceed the number of vertices "
                             f"({n_verts}).")

        if verbose:
            print(f"Solving eigenvalue problem for {n_modes} modes on a mesh with {n_verts} "
                  "vertices")
        fem = Solver(geometry, lump=lump, use_cholmod=False)
        evals, emodes = fem.eigs(k=n_modes)

        if np.isnan(evals).any():
            raise ValueError("Eigenvalues contain NaNs.")
        if evals[0] > 1e-6:
            warnings.warn(f"First eigenvalue is {evals[0]}, expected to be 0 (< 1e-6 with "
                          "precision error).")

        check_orthonorm_modes(emodes, fem.mass)

        if fix_mode1:
            emodes[:, 0] = np.full(n_verts, 1 / np.sqrt(fem.mass.sum()))
            evals[0] = 0.0
        if standardize:
            emodes = standardize_modes(emodes)

        return cls(emodes, evals, mass=fem.mass, check_orthonorm=False)

    def simulate_waves(self, ext_input=None, **kwargs):
        """
        Simulate neural activity on this basis. Keyword arguments are passed to
        `neuralwaves.waves.simulate_waves`. If the basis has a mass matrix, the input is projected
        with the 'orthogonal' method unless `decomp_method` is given.
        """
        if self.mass is not None:
            kwargs.setdefault("mass", self.mass)
            kwargs.setdefault("decomp_method", "orthogonal")

        return simulate_waves(self.emodes, self.evals, ext_input=ext_input, **kwargs)

def check_surf(surf):
    """Validate surface type and load if a file name. Returns a trimesh.Trimesh object."""
    if isinstance(surf, trimesh.Trimesh):
        return surf
    elif isinstance(surf, TriaMesh):
        return trimesh.Trimesh(vertices=surf.v, faces=surf.t, process=False)
    else:
        try:
            surf_str = str(surf)
            if surf_str.endswith('.vtk'):
                mesh = TriaMesh.read_vtk(surf_str)
                return trimesh.Trimesh(vertices=mesh.v, faces=mesh.t, process=False)
            else:
                mesh = nib.load(surf_str).darrays
                return trimesh.Trimesh(vertices=mesh[0].data, faces=mesh[1].data, process=False)
        except Exception as e:
            raise ValueError('Surface must be a path-like string or an instance of either '
                             'trimesh.Trimesh or lapy.TriaMesh.') from e

def mask_surf(surf, medmask):
    """Remove medial wall vertices from the surface mesh. Returns a trimesh.Trimesh object."""
    try:
        medmask = np.asarray(medmask, dtype=bool)
    except Exception as e:
        raise ValueError("`medmask` must be convertible to a boolean numpy array.") from e
    if len(medmask) != surf.vertices.shape[0]:
        raise ValueError(f"The number of elements in `medmask` ({len(medmask)}) must match "
                         f"the number of vertices in the surface mesh ({surf.vertices.shape[0]}).")

    # Map old vertex indices to new, keeping only faces where all vertices are in mask
    idx_map = np.full(len(medmask), -1, dtype=int)
    idx_map[medmask] = np.arange(np.sum(medmask))
    f_masked = idx_map[surf.faces[np.all(medmask[surf.faces], axis=1)]]
    mesh = trimesh.Trimesh(vertices=surf.vertices[medmask], faces=f_masked, process=False)

    components = mesh.split(only_watertight=False)
    if len(components) != 1:
        raise ValueError(f'Masked mesh is not contiguous: {len(components)} connected components '
                         'found. Try using a different medmask.')

    return mesh

def check_orthonorm_modes(emodes, mass=None):
    """
    Check if eigenmodes are approximately (mass-)orthonormal. Raises a warning if not.

    Parameters
    ----------
    emodes : array-like
        The eigenmodes array of shape (n_verts, n_modes).
    mass : array-like or scipy.sparse matrix, optional
        The mass matrix of shape (n_verts, n_verts). If None, orthonormality is checked with
        respect to the standard inner product. Default is None.

    Notes
    -----
    Under discretization, the solutions of the generalized eigenvalue problem are expected to be
    mass-orthonormal (mode_i^T * mass matrix * mode_j = delta_ij) rather than orthonormal with
    respect to the standard inner (dot) product. Projection of the external input onto the modes
    with the 'orthogonal' method relies on this property.
    """
    emodes = np.asarray(emodes)
    if mass is not None:
        prod = emodes.T @ (mass @ emodes)
        is_orthonorm = np.allclose(prod, np.eye(prod.shape[0]), atol=1e-3)
    elif emodes.shape[0] < 2:
        return
    else:
        is_orthonorm = check_normalised_vectors(emodes, tol=1e-3) and (
            emodes.shape[1] < 2 or check_orthogonal_vectors(emodes, tol=1e-3))

    if not is_orthonorm:
        warnings.warn('Eigenmodes are not mass-orthonormal.' if mass is not None
                      else 'Eigenmodes are not orthonormal.')

def standardize_modes(emodes):
    """
    Perform standardisation by flipping the modes such that the first nonzero element of each
    eigenmode is positive. This is helpful when visualising eigenmodes.
    """
    # Find the sign of the first non-zero element in each column
    signs = np.sign(emodes[np.argmax(emodes != 0, axis=0), np.arange(emodes.shape[1])])

    return emodes * signs
