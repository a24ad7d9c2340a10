import os
import numpy as np
from pathlib import Path
from joblib import Memory

def _set_cache():
    """
    Set up joblib memory caching in the directory given by the `CACHE_DIR` environment variable,
    falling back to `~/.neuralwaves-cache`.
    """
    cache_dir = os.getenv("CACHE_DIR")
    if cache_dir is None or not os.path.exists(cache_dir):
        cache_dir = Path.home() / '.neuralwaves-cache'
        cache_dir.mkdir(parents=True, exist_ok=True)

    return Memory(cache_dir, verbose=0)

def gen_random_input(n_verts, n_timepoints, seed=None):
    """Generates Gaussian white noise external input of shape (n_verts, n_timepoints)."""
    return np.random.default_rng(seed).standard_normal(size=(n_verts, n_timepoints))

def make_time_grid(dt, nt):
    """
    Build a uniformly spaced time grid starting at zero.

    Parameters
    ----------
    dt : float
        Time step. Must be positive.
    nt : int
        Number of timepoints. Must be at least 2.

    Returns
    -------
    numpy.ndarray
        Time vector [0, dt, ..., dt * (nt - 1)].
    """
    if dt <= 0:
        raise ValueError("`dt` must be positive.")
    if not isinstance(nt, (int, np.integer)) or nt < 2:
        raise ValueError("`nt` must be an integer of at least 2.")

    return np.linspace(0, dt * (nt - 1), nt)
