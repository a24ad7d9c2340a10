import numpy as np

class DimensionMismatchError(ValueError):
    """Raised when the basis, input field, and time grid have inconsistent shapes."""

class UnsupportedMethodError(ValueError):
    """Raised when a decomposition or PDE method tag is not recognised."""

class PreconditionError(ValueError):
    """Raised when an input violates a precondition of the selected solver."""

class NumericDivergenceError(RuntimeError):
    """
    Raised when the solution for one mode is non-finite or the integrator fails.

    Parameters
    ----------
    mode_index : int
        Index of the mode whose solve diverged.
    message : str
        Description of the failure.
    """

    def __init__(self, mode_index, message):
        # Both values are kept in args so the error survives pickling between joblib workers
        super().__init__(mode_index, message)
        self.mode_index = mode_index
        self.message = message

    def __str__(self):
        return f"Mode {self.mode_index}: {self.message}"

def check_orthogonal_vectors(matrix, colvec=True, tol=1e-6):
    """
    Check if a set of real-valued vectors in a matrix (rows or columns) are orthogonal.

    Parameters
    ----------
    matrix : array_like
        The set of vectors to be checked for orthogonality.
    colvec : bool, optional
        If True, vectors are the matrix's columns. If False, they are the matrix's rows. Default is True.
    tol : float, optional
        The tolerance value for checking orthogonality. Default is 1e-6.

    Returns
    -------
    bool
        True if the vectors are orthogonal, False otherwise.
    """
    matrix = _as_real_matrix(matrix, colvec)
    if matrix.ndim != 2 or matrix.shape[1] < 2:
        raise ValueError("Input array must be 2-dimensional and contain at least two vectors.")

    # Off-diagonal Gram entries vanish for orthogonal vectors
    gram = matrix.T @ matrix
    off_diag = gram - np.diagflat(np.diag(gram))

    return np.allclose(off_diag, 0, atol=tol)

def check_normalised_vectors(matrix, colvec=True, tol=1e-6):
    """
    Check if a set of real-valued vectors in a matrix (rows or columns) have unit magnitude.

    Parameters
    ----------
    matrix : array_like
        The input matrix.
    colvec : bool, optional
        If True, vectors are the matrix's columns. If False, they are the matrix's rows. Default is True.
    tol : float, optional
        The tolerance for comparing the magnitudes to 1. By default, tol=1e-6.

    Returns
    -------
    bool
        True if all vector magnitudes are close to 1 within the given tolerance, False otherwise.
    """
    matrix = _as_real_matrix(matrix, colvec)
    if matrix.ndim > 2 or matrix.shape[0] < 2:
        raise ValueError("Input array must be 1- or 2-dimensional and contain vectors, not single "
                         "values.")

    return np.allclose(np.linalg.norm(matrix, axis=0), 1.0, atol=tol)

def _as_real_matrix(matrix, colvec):
    try:
        matrix = np.asarray(matrix)
    except Exception as e:
        raise TypeError("Input must be convertible to a numpy array.") from e
    if not np.isrealobj(matrix):
        raise ValueError("Input array must contain only real values.")

    # Ensure that vectors are along columns
    return matrix if colvec else matrix.T

def check_basis(emodes, evals):
    """
    Validate an eigenbasis and return it as finite float arrays.

    Parameters
    ----------
    emodes : array-like
        The eigenmodes array of shape (n_verts, n_modes).
    evals : array-like
        The eigenvalues array of shape (n_modes,).

    Returns
    -------
    emodes : numpy.ndarray
        2D array of eigenmodes.
    evals : numpy.ndarray
        1D array of eigenvalues.

    Raises
    ------
    ValueError
        If either array contains NaNs or Infs, or if there are more modes than vertices.
    DimensionMismatchError
        If the number of eigenvalues does not match the number of eigenmodes.
    """
    try:
        emodes = np.asarray_chkfinite(emodes, dtype=float)
        evals = np.asarray_chkfinite(evals, dtype=float)
    except ValueError as e:
        raise ValueError("`emodes` and `evals` must not contain NaNs or Infs.") from e

    if emodes.ndim == 1:
        emodes = np.expand_dims(emodes, axis=1)
    evals = np.atleast_1d(evals)
    if emodes.ndim != 2:
        raise DimensionMismatchError(f"`emodes` must be 2-dimensional, got {emodes.ndim} "
                                     "dimensions.")

    n_verts, n_modes = emodes.shape
    if evals.ndim != 1 or len(evals) != n_modes:
        raise DimensionMismatchError(f"The number of eigenvalues ({evals.size}) must match the "
                                     f"number of eigenmodes ({n_modes}).")
    if n_modes > n_verts:
        raise ValueError(f"The number of eigenmodes ({n_modes}) must not exceed the number of "
                         f"vertices ({n_verts}).")

    return emodes, evals

def check_time_grid(t, nt=None):
    """
    Validate a time grid, optionally against an expected number of timepoints.

    Raises
    ------
    DimensionMismatchError
        If `t` is not 1-dimensional or its length differs from `nt`.
    ValueError
        If `t` has fewer than two points, contains non-finite values, or is not strictly increasing.
    """
    t = np.asarray(t, dtype=float)
    if t.ndim != 1:
        raise DimensionMismatchError(f"Time grid must be 1-dimensional, got shape {t.shape}.")
    if nt is not None and len(t) != nt:
        raise DimensionMismatchError(f"Time grid has {len(t)} points, should be {nt} to match the "
                                     "columns of `ext_input`.")
    if len(t) < 2:
        raise ValueError("Time grid must contain at least two points.")
    if not np.all(np.isfinite(t)):
        raise ValueError("Time grid must not contain NaNs or Infs.")
    if np.any(np.diff(t) <= 0):
        raise ValueError("Time grid must be strictly increasing.")

    return t

def check_uniform_grid(t, rtol=1e-6):
    """
    Check that a time grid is uniformly spaced, as required by the Fourier solver.

    Parameters
    ----------
    t : numpy.ndarray
        Strictly increasing time grid.
    rtol : float, optional
        Largest deviation of any step from the first one, relative to the first step. Default is
        1e-6.

    Raises
    ------
    PreconditionError
        If any step deviates from the first step by more than `rtol`.
    """
    steps = np.diff(t)
    dt = steps[0]
    max_dev = np.max(np.abs(steps - dt))
    if max_dev > rtol * dt:
        raise PreconditionError(f"The Fourier method requires a uniformly spaced time grid; steps "
                                f"deviate from dt={dt:g} by up to {max_dev:g}. Use "
                                "pde_method='ode' for non-uniform grids.")
