"""
Adaptive-step explicit Runge-Kutta integration.

Every scheme is an embedded pair: one step produces a solution of order p
and an error estimate from a lower-order companion solution that shares
the same stages. The driver accepts a step when the scaled RMS error is
below one and otherwise shrinks the step and retries.

A single integration starts, repeatedly proposes a step, evaluates the
stages, estimates the error and either accepts and advances or rejects
and shrinks. Only the terminal outcome is visible to callers: a
``Trajectory`` with status COMPLETED, or an ``IntegrationError`` carrying
STEP_SIZE_UNDERFLOW or MAX_STEPS_EXCEEDED.
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Type
import logging
import numpy as np
from numpy.typing import NDArray

from twolayer.core.parameters import ClimateState

logger = logging.getLogger(__name__)


# Step size controller constants
SAFETY = 0.9
MIN_FACTOR = 0.2
MAX_FACTOR = 10.0


class SolverStatus(str, Enum):
    COMPLETED = "completed"
    STEP_SIZE_UNDERFLOW = "step_size_underflow"
    MAX_STEPS_EXCEEDED = "max_steps_exceeded"


class IntegrationError(RuntimeError):
    """
    Raised when the adaptive integration cannot reach the end of the span.

    Attributes
    ----------
    status : SolverStatus
        Failure kind.
    t : float
        Time reached before failing.
    h : float
        Last attempted step size.
    n_steps : int
        Number of step attempts made.
    """

    def __init__(self, message: str, status: SolverStatus, t: float, h: float, n_steps: int):
        super().__init__(message)
        self.status = status
        self.t = t
        self.h = h
        self.n_steps = n_steps


class StepResult(NamedTuple):
    """Outcome of one trial step."""

    y: NDArray[np.float64]
    error: NDArray[np.float64]
    f: NDArray[np.float64]


def rms_norm(x: NDArray[np.float64]) -> float:
    """Root-mean-square norm used for error control."""
    return float(np.linalg.norm(x) / np.sqrt(x.size))


class RungeKuttaScheme(ABC):
    """
    Explicit embedded Runge-Kutta scheme defined by its Butcher tableau.

    Subclasses set the class attributes only. ``E`` holds the differences
    between the two embedded weight vectors, extended by one entry for the
    first-same-as-last stage evaluated at the new point.
    """

    name: str = ""
    C: NDArray[np.float64]
    A: NDArray[np.float64]
    B: NDArray[np.float64]
    E: NDArray[np.float64]
    order: int
    error_estimator_order: int

    @property
    def n_stages(self) -> int:
        return len(self.C)

    @property
    def error_exponent(self) -> float:
        return -1.0 / (self.error_estimator_order + 1)

    def step(
        self,
        fun: Callable[[float, NDArray], NDArray],
        t: float,
        y: NDArray[np.float64],
        h: float,
        f: Optional[NDArray[np.float64]] = None,
    ) -> StepResult:
        """
        Advance ``y`` from ``t`` to ``t + h``.

        Parameters
        ----------
        fun : callable
            Right-hand side ``fun(t, y) -> dy/dt``.
        t : float
            Current time.
        y : NDArray
            Current state.
        h : float
            Step size.
        f : NDArray, optional
            ``fun(t, y)`` if already known (reused from the previous step).

        Returns
        -------
        StepResult
            New state, local error estimate and derivative at the new point.
        """
        if f is None:
            f = fun(t, y)

        K = np.empty((self.n_stages + 1, y.size), dtype=np.float64)
        K[0] = f
        for s, (a, c) in enumerate(zip(self.A[1:], self.C[1:]), start=1):
            dy = np.dot(K[:s].T, a[:s]) * h
            K[s] = fun(t + c * h, y + dy)

        y_new = y + h * np.dot(K[:-1].T, self.B)
        f_new = fun(t + h, y_new)
        K[-1] = f_new

        error = h * np.dot(K.T, self.E)
        return StepResult(y_new, error, f_new)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(order={self.order})"


class Tsit5(RungeKuttaScheme):
    """Tsitouras 5(4) pair with first-same-as-last property."""

    name = "Tsit5"
    order = 5
    error_estimator_order = 4
    C = np.array([0.0, 0.161, 0.327, 0.9, 0.9800255409045097, 1.0])
    A = np.array([
        [0.0, 0.0, 0.0, 0.0, 0.0],
        [0.161, 0.0, 0.0, 0.0, 0.0],
        [-0.008480655492356989, 0.335480655492357, 0.0, 0.0, 0.0],
        [2.897153057105493, -6.359448489975075, 4.3622954328695815, 0.0, 0.0],
        [5.325864828439257, -11.748883564062828, 7.4955393428898365,
         -0.09249506636175525, 0.0],
        [5.86145544294642, -12.92096931784711, 8.159367898576159,
         -0.071584973281401, -0.028269050394068383],
    ])
    B = np.array([
        0.09646076681806523,
        0.01,
        0.4798896504144996,
        1.379008574103742,
        -3.290069515436081,
        2.324710524099774,
    ])
    E = np.array([
        -0.00178001105222577714,
        -0.0008164344596567469,
        0.007880878010261995,
        -0.1447110071732629,
        0.5823571654525552,
        -0.45808210592918697,
        1.0 / 66.0,
    ])


class DormandPrince45(RungeKuttaScheme):
    """Dormand-Prince 5(4) pair."""

    name = "DormandPrince45"
    order = 5
    error_estimator_order = 4
    C = np.array([0.0, 1 / 5, 3 / 10, 4 / 5, 8 / 9, 1.0])
    A = np.array([
        [0.0, 0.0, 0.0, 0.0, 0.0],
        [1 / 5, 0.0, 0.0, 0.0, 0.0],
        [3 / 40, 9 / 40, 0.0, 0.0, 0.0],
        [44 / 45, -56 / 15, 32 / 9, 0.0, 0.0],
        [19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729, 0.0],
        [9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656],
    ])
    B = np.array([35 / 384, 0.0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84])
    E = np.array([
        -71 / 57600, 0.0, 71 / 16695, -71 / 1920, 17253 / 339200, -22 / 525, 1 / 40,
    ])


class BogackiShampine32(RungeKuttaScheme):
    """Bogacki-Shampine 3(2) pair, cheap for loose tolerances."""

    name = "BogackiShampine32"
    order = 3
    error_estimator_order = 2
    C = np.array([0.0, 1 / 2, 3 / 4])
    A = np.array([
        [0.0, 0.0, 0.0],
        [1 / 2, 0.0, 0.0],
        [0.0, 3 / 4, 0.0],
    ])
    B = np.array([2 / 9, 1 / 3, 4 / 9])
    E = np.array([5 / 72, -1 / 12, -1 / 9, 1 / 8])


SCHEMES: Dict[str, Type[RungeKuttaScheme]] = {
    "tsit5": Tsit5,
    "dormandprince45": DormandPrince45,
    "dopri5": DormandPrince45,
    "rk45": DormandPrince45,
    "bogackishampine32": BogackiShampine32,
    "rk23": BogackiShampine32,
}


def get_scheme(method: "str | RungeKuttaScheme") -> RungeKuttaScheme:
    """
    Resolve a scheme instance from a name or pass an instance through.

    Raises
    ------
    KeyError
        If the name is unknown.
    """
    if isinstance(method, RungeKuttaScheme):
        return method

    key = method.lower().replace("-", "").replace("_", "")
    if key not in SCHEMES:
        raise KeyError(f"Unknown integration method '{method}'. Available: {list_schemes()}")
    return SCHEMES[key]()


def list_schemes() -> List[str]:
    """Canonical scheme names."""
    return [cls.name for cls in (Tsit5, DormandPrince45, BogackiShampine32)]


@dataclass
class Trajectory:
    """
    Accepted solver nodes from t_start to t_end.

    Attributes
    ----------
    t : NDArray
        Strictly increasing times, shape (n,).
    y : NDArray
        States, shape (n_components, n).
    dydt : NDArray
        Derivatives evaluated at the accepted nodes, shape (n_components, n).
    """

    t: NDArray[np.float64]
    y: NDArray[np.float64]
    dydt: NDArray[np.float64]
    method: str = ""
    status: SolverStatus = SolverStatus.COMPLETED
    message: str = ""
    n_evaluations: int = 0
    n_accepted: int = 0
    n_rejected: int = 0
    settings: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status is SolverStatus.COMPLETED

    @property
    def atmosphere(self) -> NDArray[np.float64]:
        """First state component at every node."""
        return self.y[0]

    @property
    def ocean(self) -> NDArray[np.float64]:
        """Second state component at every node."""
        return self.y[1]

    @property
    def difference(self) -> NDArray[np.float64]:
        """First minus second component."""
        return self.y[0] - self.y[1]

    @property
    def states(self) -> List[ClimateState]:
        return [ClimateState(float(a), float(o)) for a, o in self.y.T]

    def interpolate(self, times: Sequence[float]) -> NDArray[np.float64]:
        """
        Dense output by cubic Hermite interpolation between accepted nodes.

        Parameters
        ----------
        times : sequence of float
            Query times inside [t[0], t[-1]].

        Returns
        -------
        NDArray
            States of shape (n_components, len(times)).
        """
        from scipy.interpolate import CubicHermiteSpline

        times = np.asarray(times, dtype=np.float64)
        if np.any(times < self.t[0]) or np.any(times > self.t[-1]):
            raise ValueError(
                f"Interpolation times must lie in [{self.t[0]}, {self.t[-1]}]"
            )
        if self.t.size == 1:
            return np.repeat(self.y, times.size, axis=1)

        spline = CubicHermiteSpline(self.t, self.y, self.dydt, axis=1)
        return spline(times)

    def __len__(self) -> int:
        return len(self.t)


def select_initial_step(
    fun: Callable[[float, NDArray], NDArray],
    t0: float,
    y0: NDArray[np.float64],
    f0: NDArray[np.float64],
    error_estimator_order: int,
    rtol: float,
    atol: float,
    max_step: float,
    span: float,
) -> float:
    """
    Empirical first step size (Hairer, Nørsett & Wanner, II.4).

    Both the state and its derivative are measured against the error
    scale; a trial Euler step estimates the second derivative.
    """
    scale = atol + np.abs(y0) * rtol
    d0 = rms_norm(y0 / scale)
    d1 = rms_norm(f0 / scale)
    if d0 < 1e-5 or d1 < 1e-5 or not np.isfinite(d1):
        h0 = 1e-6
    else:
        h0 = 0.01 * d0 / d1
    h0 = min(h0, span)

    y1 = y0 + h0 * f0
    f1 = fun(t0 + h0, y1)
    d2 = rms_norm((f1 - f0) / scale) / h0

    if not np.isfinite(d2):
        return min(h0, max_step)

    if d1 <= 1e-15 and d2 <= 1e-15:
        h1 = max(1e-6, h0 * 1e-3)
    else:
        h1 = (0.01 / max(d1, d2)) ** (1.0 / (error_estimator_order + 1))

    return min(100 * h0, h1, span, max_step)


def integrate(
    fun: Callable[..., Sequence[float]],
    y0: Sequence[float],
    t_span: Tuple[float, float],
    args: Tuple[Any, ...] = (),
    method: "str | RungeKuttaScheme" = "Tsit5",
    rtol: float = 1e-3,
    atol: float = 1e-6,
    first_step: Optional[float] = None,
    max_step: float = np.inf,
    max_steps: int = 100_000,
    min_step: float = 0.0,
    callback: Optional[Callable[[float, NDArray], None]] = None,
) -> Trajectory:
    """
    Integrate ``dy/dt = fun(t, y, *args)`` over ``t_span`` with step control.

    Parameters
    ----------
    fun : callable
        Right-hand side. Receives the state as a 1-D float array and
        returns any array-like of the same length.
    y0 : sequence of float
        Initial state.
    t_span : (float, float)
        Start and end time; the end must be greater than the start.
    args : tuple, optional
        Extra positional arguments passed to ``fun`` (parameters, rng...).
    method : str or RungeKuttaScheme, optional
        Embedded scheme. Default is "Tsit5".
    rtol, atol : float, optional
        Relative and absolute tolerances. Defaults 1e-3 and 1e-6.
    first_step : float, optional
        Initial step size. Chosen automatically when omitted.
    max_step : float, optional
        Upper bound on the step size. Default is unbounded.
    max_steps : int, optional
        Maximum number of step attempts (accepted + rejected).
    min_step : float, optional
        Absolute lower bound on the step size; the effective bound is never
        below ten floating-point spacings of the current time.
    callback : callable, optional
        ``callback(t, y)`` called after every accepted step.

    Returns
    -------
    Trajectory
        Accepted nodes including both end points.

    Raises
    ------
    IntegrationError
        If the step size underflows or the step budget is exhausted.
    ValueError
        If the arguments are inconsistent.
    """
    t_start, t_end = float(t_span[0]), float(t_span[1])
    if not t_end > t_start:
        raise ValueError(f"t_span must be increasing, got ({t_start}, {t_end})")
    if rtol <= 0 or atol <= 0:
        raise ValueError(f"Tolerances must be positive, got rtol={rtol}, atol={atol}")
    if max_step <= 0:
        raise ValueError(f"max_step must be positive, got {max_step}")

    scheme = get_scheme(method)

    y = np.array(y0, dtype=np.float64)
    if y.ndim != 1:
        raise ValueError(f"Initial state must be one-dimensional, got shape {y.shape}")

    n_evaluations = 0

    def rhs(t: float, state: NDArray) -> NDArray:
        nonlocal n_evaluations
        n_evaluations += 1
        return np.asarray(fun(t, state, *args), dtype=np.float64)

    logger.debug(
        f"Integrating with {scheme.name} on [{t_start}, {t_end}], "
        f"rtol={rtol}, atol={atol}"
    )

    t = t_start
    f = rhs(t, y)
    span = t_end - t_start

    if first_step is None:
        h = select_initial_step(
            rhs, t, y, f, scheme.error_estimator_order, rtol, atol, max_step, span
        )
    else:
        if first_step <= 0:
            raise ValueError(f"first_step must be positive, got {first_step}")
        h = min(first_step, span)

    ts: List[float] = [t]
    ys: List[NDArray] = [y]
    fs: List[NDArray] = [f]
    n_accepted = 0
    n_rejected = 0
    n_attempts = 0
    exponent = scheme.error_exponent

    while t < t_end:
        floor = max(min_step, 10 * np.abs(np.nextafter(t, np.inf) - t))
        if h > max_step:
            h = max_step
        elif h < floor:
            h = floor

        step_rejected = False
        while True:
            if n_attempts >= max_steps:
                status = SolverStatus.MAX_STEPS_EXCEEDED
                message = (
                    f"Exceeded {max_steps} step attempts at t={t:.6g} (h={h:.3g}), "
                    f"{n_rejected} rejected ({n_rejected / max(n_attempts, 1):.0%}); "
                    f"the problem may be stiff"
                )
                logger.error(message)
                raise IntegrationError(message, status, t, h, n_attempts)

            if h < floor:
                status = SolverStatus.STEP_SIZE_UNDERFLOW
                message = f"Step size underflow at t={t:.6g}: h={h:.3g} < {floor:.3g}"
                logger.error(message)
                raise IntegrationError(message, status, t, h, n_attempts)

            t_new = t + h
            if t_new >= t_end:
                t_new = t_end
            h_step = t_new - t

            n_attempts += 1
            y_new, error, f_new = scheme.step(rhs, t, y, h_step, f)

            scale = atol + np.maximum(np.abs(y), np.abs(y_new)) * rtol
            error_norm = rms_norm(error / scale)

            if np.isfinite(error_norm) and error_norm < 1:
                if error_norm == 0:
                    factor = MAX_FACTOR
                else:
                    factor = min(MAX_FACTOR, SAFETY * error_norm ** exponent)
                if step_rejected:
                    factor = min(1.0, factor)
                h = h_step * factor
                break

            if np.isfinite(error_norm):
                factor = max(MIN_FACTOR, SAFETY * error_norm ** exponent)
            else:
                factor = MIN_FACTOR
            h = h_step * factor
            step_rejected = True
            n_rejected += 1

        t, y, f = t_new, y_new, f_new
        n_accepted += 1
        ts.append(t)
        ys.append(y)
        fs.append(f)

        if callback is not None:
            callback(t, y)

    status = SolverStatus.COMPLETED
    message = f"Reached t_end={t_end} in {n_accepted} steps ({n_rejected} rejected)"
    logger.debug(message)

    return Trajectory(
        t=np.array(ts),
        y=np.array(ys).T,
        dydt=np.array(fs).T,
        method=scheme.name,
        status=status,
        message=message,
        n_evaluations=n_evaluations,
        n_accepted=n_accepted,
        n_rejected=n_rejected,
        settings={
            "rtol": rtol,
            "atol": atol,
            "max_step": max_step,
            "max_steps": max_steps,
        },
    )
