"""
Per-mode temporal solvers for the damped wave equation.

Each eigenmode j with eigenvalue lambda_j obeys the forced, damped oscillator

    d^2 phi_j / dt^2 + 2 * gamma * d phi_j / dt + gamma^2 * (1 + r^2 * lambda_j) * phi_j
        = gamma^2 * q_j(t)

where q_j(t) is the projection of the external input onto the mode. Two interchangeable strategies
solve it: direct time integration (`ODESolver`) and multiplication by the closed-form transfer
function in the frequency domain (`FourierSolver`).
"""

from enum import Enum
import numpy as np
from scipy.integrate import solve_ivp
from neuralwaves.validation import UnsupportedMethodError, check_uniform_grid

class PDEMethod(str, Enum):
    """Method for solving the wave PDE of each mode."""
    ODE = "ode"
    FOURIER = "fourier"

    @classmethod
    def parse(cls, method):
        """Convert a method tag (case-insensitive string or PDEMethod) to a PDEMethod."""
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).lower())
        except ValueError:
            options = " or ".join(f"'{m.value}'" for m in cls)
            raise UnsupportedMethodError(f"Invalid PDE method '{method}'; must be "
                                         f"{options}.") from None

class ModeSolver:
    """Interface of a per-mode temporal solver."""
    method = None

    def check_grid(self, t):
        """Raise if the time grid violates a precondition of this solver."""

    def solve(self, input_coeff, t, eval, params):
        """
        Compute the activity of one mode driven by its input coefficients.

        Parameters
        ----------
        input_coeff : np.ndarray
            Input drive to the mode at each timepoint, of shape (nt,).
        t : np.ndarray
            Strictly increasing timepoints of shape (nt,).
        eval : float
            The eigenvalue associated with the mode.
        params : WaveParams
            Wave model parameters.

        Returns
        -------
        np.ndarray
            Activity of the mode at each timepoint in `t`, of shape (nt,).
        """
        raise NotImplementedError

def interp_forcing(t_, t, input_coeff):
    """Linearly interpolate the driving term at time t_ from its samples on the grid t."""
    return float(np.interp(t_, t, input_coeff))

def wave_rhs(t_, y, t, input_coeff, gamma, r, eval):
    """
    Right-hand side of the wave equation in first-order form.

    With state y = (phi, dphi/dt):
        dx1/dt = x2
        dx2/dt = gamma^2 * (q(t) - (2 / gamma) * x2 - (1 + r^2 * lambda) * x1)
    """
    x1, x2 = y
    qval = interp_forcing(t_, t, input_coeff)

    dx1dt = x2
    dx2dt = gamma**2 * (qval - (2 / gamma) * x2 - x1 * (1 + r**2 * eval))

    return [dx1dt, dx2dt]

class ODESolver(ModeSolver):
    """
    Solve the wave equation of one mode by adaptive Runge-Kutta integration.

    The system starts with activity equal to the first input coefficient and zero velocity, and is
    integrated with `scipy.integrate.solve_ivp` (RK45, dense output evaluated at every timepoint).
    The time grid does not need to be uniform.

    Parameters
    ----------
    rtol : float, optional
        Relative tolerance of the integrator. Default is 1e-6.
    atol : float, optional
        Absolute tolerance of the integrator. Default is 1e-9.
    """
    method = PDEMethod.ODE

    def __init__(self, rtol=1e-6, atol=1e-9):
        self.rtol = rtol
        self.atol = atol

    def solve(self, input_coeff, t, eval, params):
        input_coeff = np.asarray(input_coeff, dtype=float)
        t = np.asarray(t, dtype=float)
        y0 = [input_coeff[0], 0.0]

        sol = solve_ivp(
            wave_rhs,
            t_span=(t[0], t[-1]),
            y0=y0,
            t_eval=t,
            args=(t, input_coeff, params.gamma_s, params.r_s, float(eval)),
            method='RK45',
            rtol=self.rtol,
            atol=self.atol
        )

        if not sol.success:
            raise RuntimeError(f"Wave ODE solver failed. `scipy.integrate.solve_ivp` message: "
                               f"{sol.message}")

        return sol.y[0]

def extend_time_grid(t):
    """
    Build a zero-centred time grid spanning [-tmax, tmax] with the step of `t`.

    Times are measured from t[0], so the input grid maps onto the non-negative half.

    Parameters
    ----------
    t : np.ndarray
        Uniformly spaced, strictly increasing timepoints.

    Returns
    -------
    t_full : np.ndarray
        Symmetric time vector of length 2 * (len(t) - 1) + 1.
    t0_ind : int
        Index of the sample closest to zero time in `t_full`.
    """
    dt = t[1] - t[0]
    n = int(round((t[-1] - t[0]) / dt))
    t_full = dt * np.arange(-n, n + 1)
    t0_ind = int(np.argmin(np.abs(t_full)))

    return t_full, t0_ind

def calc_freq_grid(nt_full, dt):
    """
    Angular frequencies centred at zero: w_j = (2 * pi / dt) / N * (j - N / 2) for j = 0..N-1.

    For odd N the grid is offset by half a bin from the integer-bin grid of `np.fft.fftfreq`, which
    matches the sign-modulated transform pair used by `FourierSolver`.
    """
    wsamp = 2 * np.pi / dt
    jvec = np.arange(nt_full)

    return wsamp / nt_full * (jvec - nt_full / 2)

def transfer_function(omega, eval, params):
    """Frequency response (Green's function) of the damped wave equation for one mode."""
    gamma = params.gamma_s
    r = params.r_s

    return gamma**2 / (-omega**2 - 2j * omega * gamma + gamma**2 * (1 + r**2 * eval))

def coord2freq(signal):
    """
    Transform a time-domain signal to the centred frequency grid of `calc_freq_grid`.

    Computes sum_k x_k exp(+i w_j t_k) / N. Modulating by (-1)^k moves the physical zero frequency
    from array index 0 to index N/2.
    """
    sign = (-1.0) ** np.arange(len(signal))
    return np.fft.ifft(sign * signal)

def freq2coord(spectrum):
    """Inverse of `coord2freq`: sum_j X_j exp(-i w_j t_k), returned on the time grid."""
    sign = (-1.0) ** np.arange(len(spectrum))
    return sign * np.fft.fft(spectrum)

class FourierSolver(ModeSolver):
    """
    Solve the wave equation of one mode with its closed-form frequency response.

    Notes
    -----
    This uses a frequency-domain method to simulate the damped wave response of a causal input. To
    ensure causality (i.e., the input is zero for t < 0), the input is zero-padded on the negative
    time axis. The sequence is:
      1. Extend the time grid to [-tmax, tmax] and zero-pad the input for t < 0
      2. Transform to the centred frequency grid with the exp(+i w t) convention
      3. Apply the frequency response (transfer function)
      4. Transform back with exp(-i w t), keep the real part
      5. Return only the non-negative time part
    This is equivalent to convolution with the Green's function of the damped wave equation, so the
    system starts at rest rather than at the first input value.

    The time grid must be uniformly spaced.
    """
    method = PDEMethod.FOURIER

    def check_grid(self, t):
        check_uniform_grid(t)

    def solve(self, input_coeff, t, eval, params):
        input_coeff = np.asarray(input_coeff, dtype=float)
        t = np.asarray(t, dtype=float)
        dt = t[1] - t[0]

        t_full, t0_ind = extend_time_grid(t)
        nt_full = len(t_full)

        # Pad input with zeros on negative side (system is only driven for t >= 0)
        input_coeff_padded = np.zeros(nt_full)
        input_coeff_padded[t0_ind:] = input_coeff

        omega = calc_freq_grid(nt_full, dt)
        out_fft = transfer_function(omega, eval, params) * coord2freq(input_coeff_padded)
        out_full = np.real(freq2coord(out_fft))

        return out_full[t0_ind:]

SOLVERS = {
    PDEMethod.ODE: ODESolver,
    PDEMethod.FOURIER: FourierSolver,
}

def get_solver(method, **kwargs):
    """
    Create the solver for a PDE method.

    Parameters
    ----------
    method : str or PDEMethod
        Either 'ode' or 'fourier' (case-insensitive).
    **kwargs
        Passed to the solver constructor (e.g. `rtol`, `atol` for the ODE solver).

    Returns
    -------
    ModeSolver
        A solver instance exposing `solve(input_coeff, t, eval, params)`.

    Raises
    ------
    UnsupportedMethodError
        If the method is not recognised.
    """
    return SOLVERS[PDEMethod.parse(method)](**kwargs)
