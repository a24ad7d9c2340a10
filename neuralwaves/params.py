import numpy as np

class WaveParams:
    """
    Parameters of the damped wave model, fixed at construction.

    Parameters
    ----------
    r_s : float, optional
        Spatial length scale of wave propagation in millimeters. Default is 30.
    gamma_s : float, optional
        Damping rate of wave propagation in s^-1. If time is given in milliseconds, `gamma_s` must
        be given in ms^-1 (e.g. 0.116). Default is 116.

    Raises
    ------
    ValueError
        If either parameter is not positive and finite.
    """
    R_S_DEFAULT = 30.0
    GAMMA_S_DEFAULT = 116.0

    __slots__ = ("_r_s", "_gamma_s")

    def __init__(self, r_s=R_S_DEFAULT, gamma_s=GAMMA_S_DEFAULT):
        self._r_s = _check_positive(r_s, "r_s")
        self._gamma_s = _check_positive(gamma_s, "gamma_s")

    @property
    def r_s(self):
        return self._r_s

    @property
    def gamma_s(self):
        return self._gamma_s

    def __repr__(self):
        return f"WaveParams(r_s={self.r_s}, gamma_s={self.gamma_s})"

    def __eq__(self, other):
        if not isinstance(other, WaveParams):
            return NotImplemented
        return (self.r_s, self.gamma_s) == (other.r_s, other.gamma_s)

    def __hash__(self):
        return hash((self.r_s, self.gamma_s))

    @property
    def wave_speed(self):
        """Wave speed in m/s, assuming `r_s` in mm and `gamma_s` in s^-1."""
        return calc_wave_speed(self.r_s, self.gamma_s)

def _check_positive(value, name):
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Parameter `{name}` must be a real number, got {value!r}.") from e
    if not np.isfinite(value) or value <= 0:
        raise ValueError(f"Parameter `{name}` must be positive and finite, got {value}.")
    return value

def resolve_params(params=None, r=None, gamma=None):
    """
    Build the parameter set for a simulation, applying defaults for anything left unset.

    Parameters
    ----------
    params : WaveParams or dict, optional
        Full parameter set. A dict may contain the keys 'r_s' and 'gamma_s'. Default is None.
    r : float, optional
        Shortcut for `r_s`; cannot be combined with `params`. Default is None.
    gamma : float, optional
        Shortcut for `gamma_s`; cannot be combined with `params`. Default is None.

    Returns
    -------
    WaveParams
        The resolved parameters.

    Raises
    ------
    ValueError
        If `params` is combined with `r` or `gamma`, if `params` has an unsupported type or keys,
        or if any value is not positive.
    """
    if params is not None:
        if r is not None or gamma is not None:
            raise ValueError("Provide either `params` or `r`/`gamma`, not both.")
        if isinstance(params, WaveParams):
            return params
        if isinstance(params, dict):
            unknown = set(params) - {"r_s", "gamma_s"}
            if unknown:
                raise ValueError(f"Invalid wave model parameter(s) {sorted(unknown)}; must be "
                                 "'r_s' or 'gamma_s'.")
            return WaveParams(**params)
        raise ValueError("`params` must be a WaveParams instance, a dict, or None.")

    return WaveParams(
        r_s=WaveParams.R_S_DEFAULT if r is None else r,
        gamma_s=WaveParams.GAMMA_S_DEFAULT if gamma is None else gamma
    )

def calc_wave_speed(r, gamma):
    """
    Calculate wave speed based on the two parameters of the wave model.

    Parameters
    ----------
    r : float
        Spatial length scale of wave propagation in millimeters.
    gamma : float
        Damping rate of wave propagation in s^-1.

    Returns
    -------
    float
        Wave speed in m/s.
    """
    return (r / 1000) * gamma # Convert r to meters
