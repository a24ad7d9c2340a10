import numpy as np
from scipy.sparse import issparse
from neuralwaves.validation import DimensionMismatchError, UnsupportedMethodError

def decompose(data, emodes, method='regress', mass=None):
    """
    Calculate the eigen-decomposition of the given data using the specified method.

    Parameters
    ----------
    data : array-like
        The input data array of shape (n_verts, n_maps), where n_verts is the number of vertices
        and n_maps is the number of brain maps (or timepoints). 1D data is treated as one map.
    emodes : array-like
        The eigenmodes array of shape (n_verts, n_modes), where n_modes is the number of
        eigenmodes.
    method : str, optional
        The method used for the eigen-decomposition, either 'regress' for least-squares fitting
        or 'orthogonal' to project data into a mass-orthonormal space. Default is 'regress'.
    mass : array-like or scipy.sparse matrix, optional
        The mass matrix of shape (n_verts, n_verts) used when method is 'orthogonal'. If using
        EigenBasis.from_surface, provide its `mass`. Default is None.

    Returns
    -------
    beta : numpy.ndarray
        The beta coefficients array of shape (n_modes, n_maps).

    Raises
    ------
    DimensionMismatchError
        If the number of vertices in `data` and `emodes` do not match.
    UnsupportedMethodError
        If an invalid method is specified.
    ValueError
        If `emodes` contain NaNs, or if the `mass` matrix is not provided when required.
    """
    data = np.asarray(data)
    emodes = np.asarray(emodes)
    if data.ndim == 1:
        data = np.expand_dims(data, axis=1)
    if emodes.ndim == 1:
        emodes = np.expand_dims(emodes, axis=1)
    if data.shape[0] != emodes.shape[0]:
        raise DimensionMismatchError(f"The number of elements in `data` ({data.shape[0]}) must "
                                     "match the number of vertices in `emodes` "
                                     f"({emodes.shape[0]}).")
    if np.isnan(emodes).any() or np.isinf(emodes).any():
        raise ValueError("`emodes` contains NaNs or Infs.")

    if method == 'regress':
        beta = np.linalg.solve(emodes.T @ emodes, emodes.T @ data)
    elif method == 'orthogonal':
        if mass is None or mass.shape != (emodes.shape[0], emodes.shape[0]):
            raise ValueError(f"Mass matrix of shape ({emodes.shape[0]}, {emodes.shape[0]}) must "
                             "be provided when method is 'orthogonal'.")
        # Sparse mass matrices keep the product sparse-aware
        weighted = mass @ data if issparse(mass) else np.asarray(mass) @ data
        beta = emodes.T @ np.asarray(weighted)
    else:
        raise UnsupportedMethodError(f"Invalid eigen-decomposition method '{method}'; must be "
                                     "'regress' or 'orthogonal'.")

    return beta

def reconstruct(mode_coeffs, emodes):
    """
    Combine mode time series with the spatial eigenmodes to recover activity at each vertex.

    Parameters
    ----------
    mode_coeffs : array-like
        The mode coefficients array of shape (n_modes, n_timepoints). 1D input is treated as a
        single timepoint.
    emodes : array-like
        The eigenmodes array of shape (n_verts, n_modes).

    Returns
    -------
    numpy.ndarray
        The reconstructed activity of shape (n_verts, n_timepoints).

    Raises
    ------
    DimensionMismatchError
        If the number of rows in `mode_coeffs` does not match the number of eigenmodes.
    """
    mode_coeffs = np.asarray(mode_coeffs)
    emodes = np.asarray(emodes)
    if mode_coeffs.ndim == 1:
        mode_coeffs = np.expand_dims(mode_coeffs, axis=1)
    if emodes.ndim == 1:
        emodes = np.expand_dims(emodes, axis=1)
    if mode_coeffs.shape[0] != emodes.shape[1]:
        raise DimensionMismatchError(f"The number of rows in `mode_coeffs` ({mode_coeffs.shape[0]})"
                                     f" must match the number of eigenmodes ({emodes.shape[1]}).")

    return emodes @ mode_coeffs
