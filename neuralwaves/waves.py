"""
Module for using neural field theory to simulate neural activity on cortical surfaces.
"""

from warnings import warn
import numpy as np
from joblib import Parallel, delayed
from neuralwaves.basis import decompose, reconstruct
from neuralwaves.params import resolve_params
from neuralwaves.solvers import get_solver
from neuralwaves.utils import _set_cache, gen_random_input, make_time_grid
from neuralwaves.validation import (DimensionMismatchError, NumericDivergenceError, check_basis,
                                    check_time_grid)

def simulate_waves(emodes, evals, ext_input=None, t=None, dt=0.1, nt=None, pde_method="ode",
                   params=None, r=None, gamma=None, decomp_method="regress", mass=None,
                   speed_limits=(0, 150), n_jobs=1, seed=None, cache_input=False, verbose=False):
    """
    Simulate neural activity on the surface mesh using the eigenmode decomposition. Each mode of
    the external input drives a damped wave equation, solved independently per mode, and the mode
    activities are recombined with the eigenmodes.

    Parameters
    ----------
    emodes : array-like
        The eigenmodes array of shape (n_verts, n_modes), where n_verts is the number of vertices
        and n_modes is the number of eigenmodes.
    evals : array-like
        The eigenvalues array of shape (n_modes,), ordered as the columns of `emodes`.
    ext_input : array-like, optional
        External input array of shape (n_verts, n_timepoints). If None, Gaussian white noise input
        is generated. Default is None.
    t : array-like, optional
        Strictly increasing time vector of shape (n_timepoints,). If None, a uniform grid starting
        at zero with step `dt` is used. Default is None.
    dt : float, optional
        Time step used when `t` is None, in the time unit of `gamma`. Default is 0.1.
    nt : int, optional
        Number of timepoints. If None, it is taken from `t` or `ext_input`, or 1000 if neither is
        given. Default is None.
    pde_method : str or PDEMethod, optional
        Method for solving the wave PDE. Either 'ode' or 'fourier' (case-insensitive). Default is
        'ode'.
    params : WaveParams or dict, optional
        Wave model parameters (`r_s`, `gamma_s`). If None, defaults of r_s = 30 mm and
        gamma_s = 116 s^-1 are used unless overridden by `r` or `gamma`. Default is None.
    r : float, optional
        Spatial length scale of wave propagation in millimeters. Cannot be combined with `params`.
        Default is None.
    gamma : float, optional
        Damping rate of wave propagation. Cannot be combined with `params`. Default is None.
    decomp_method : str, optional
        The method used for the eigen-decomposition of the input, either 'regress' or
        'orthogonal'. Default is 'regress'.
    mass : array-like or scipy.sparse matrix, optional
        The mass matrix of shape (n_verts, n_verts), required when `decomp_method` is
        'orthogonal'. Default is None.
    speed_limits : tuple, optional
        If the wave speed is outside this range (in m/s), a warning is raised. If None, no check is
        made. Default is (0, 150).
    n_jobs : int, optional
        Number of joblib workers used to solve the modes. Default is 1 (no parallelism).
    seed : int, optional
        Random seed for generating external input. Default is None.
    cache_input : bool, optional
        If True and `ext_input` is None, cache the generated random input. Inputs are cached in the
        directory specified by the `CACHE_DIR` environment variable, or `~/.neuralwaves-cache` if
        not set. Default is False.
    verbose : bool, optional
        Whether to print progress messages. Default is False.

    Returns
    -------
    np.ndarray
        Simulated neural activity of shape (n_verts, n_timepoints).

    Raises
    ------
    DimensionMismatchError
        If the shapes of `emodes`, `evals`, `ext_input` and `t` are inconsistent.
    UnsupportedMethodError
        If either the eigen-decomposition or PDE method is invalid.
    PreconditionError
        If `pde_method` is 'fourier' and `t` is not uniformly spaced.
    NumericDivergenceError
        If the solution of any mode is not finite. No partial output is returned.
    ValueError
        If a parameter is invalid.

    Notes
    -----
    The 'ode' method starts each mode at its first input value, while the 'fourier' method assumes
    the system is at rest before the first timepoint. Consider discarding the initial transient
    when comparing the two.
    """
    emodes, evals = check_basis(emodes, evals)
    n_verts, n_modes = emodes.shape
    params = resolve_params(params, r=r, gamma=gamma)
    solver = get_solver(pde_method)

    if speed_limits is not None:
        if not isinstance(speed_limits, tuple) or not len(speed_limits) == 2 \
            or speed_limits[0] < 0 or speed_limits[0] >= speed_limits[1]:
            raise ValueError("`speed_limits` must be a tuple of (min_speed, max_speed), where "
                             "min_speed is non-negative and less than max_speed.")
        speed = params.wave_speed
        if speed < speed_limits[0] or speed > speed_limits[1]:
            warn(f"The combination of `r` and `gamma` leads to a wave speed of {speed:.2f} m/s, "
                 f"outside the specified `speed_limits` range ({speed_limits[0]}-"
                 f"{speed_limits[1]} m/s).")

    # Resolve the number of timepoints and the time grid
    if ext_input is not None:
        ext_input = np.asarray_chkfinite(ext_input, dtype=float)
        if ext_input.ndim != 2 or ext_input.shape[0] != n_verts:
            raise DimensionMismatchError(f"`ext_input` has shape {ext_input.shape}, should be "
                                         f"({n_verts}, n_timepoints).")
        if nt is not None and ext_input.shape[1] != nt:
            raise DimensionMismatchError(f"`ext_input` has shape {ext_input.shape}, should be "
                                         f"({n_verts}, {nt}).")
        nt = ext_input.shape[1]
    if t is not None:
        t = check_time_grid(t, nt=nt)
        nt = len(t)
    else:
        t = make_time_grid(dt, 1000 if nt is None else nt)
        nt = len(t)
    solver.check_grid(t)

    if ext_input is None:
        if cache_input and seed is not None:
            gen_input = _set_cache().cache(gen_random_input)
        else:
            if cache_input:
                warn("`cache_input` is ignored when `seed` is None.")
            gen_input = gen_random_input
        ext_input = gen_input(n_verts, nt, seed=seed)
    else:
        if seed is not None:
            warn("`seed` is ignored when `ext_input` is provided.")
        if cache_input:
            warn("`cache_input` is ignored when `ext_input` is provided.")

    # Mode decomposition of external input
    input_coeffs = decompose(ext_input, emodes, method=decomp_method, mass=mass)

    if verbose:
        print(f"Simulating {n_modes} modes over {nt} timepoints with the {solver.method.value} "
              f"method ({params})")

    # Modes are independent; each unit only reads its own row and eigenvalue
    mode_activity = Parallel(n_jobs=n_jobs)(
        delayed(solve_mode)(solver, mode_idx, input_coeffs[mode_idx, :], t, evals[mode_idx], params)
        for mode_idx in range(n_modes)
    )

    # Combine the mode activities to get the total simulated activity
    return reconstruct(np.vstack(mode_activity), emodes)

def solve_mode(solver, mode_idx, input_coeff, t, eval, params):
    """
    Solve the wave equation for a single mode, tagging any numerical failure with its index.

    Raises
    ------
    NumericDivergenceError
        If the solver fails or returns NaNs or Infs.
    """
    try:
        with np.errstate(over="ignore", invalid="ignore"):
            activity = solver.solve(input_coeff, t, eval, params)
    except (RuntimeError, OverflowError) as e:
        raise NumericDivergenceError(mode_idx, str(e)) from e

    if not np.all(np.isfinite(activity)):
        raise NumericDivergenceError(mode_idx, f"The {solver.method.value} solution contains NaNs "
                                     f"or Infs (eigenvalue {eval:g}, {params}).")

    return activity
