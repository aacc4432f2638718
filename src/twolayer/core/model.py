"""
Main climate model class for running simulations.
"""

from typing import Any, Dict, Optional, Sequence, Tuple
import logging
import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from twolayer.core.dynamics import (
    two_layer_climate_model,
    deterministic_forcing,
    equilibrium_climate_sensitivity,
)
from twolayer.core.parameters import (
    ClimateParameters,
    ClimateState,
    FeedbackSettings,
    ForcingSettings,
    DEFAULT_PARAMETERS,
    DEFAULT_FEEDBACKS,
    DEFAULT_FORCING,
    DEFAULT_INITIAL_STATE,
    DEFAULT_T_SPAN,
)
from twolayer.core.results import SimulationResults
from twolayer.core.solver import get_scheme, integrate
from twolayer.utils.logging import (
    start_step,
    end_step,
    log_error,
    log_calculation_issue,
)

logger = logging.getLogger(__name__)

# Departure from the reference temperature flagged as a runaway (K)
EXTREME_ANOMALY = 200.0


class ClimateModel:
    """
    Two-layer energy-balance climate model.

    A fast atmosphere / mixed-ocean layer exchanges heat with a slow deep
    ocean while being driven by a greenhouse ramp, volcanic eruptions, the
    solar cycle and white-noise forcing. Albedo, water vapor and cloud
    feedbacks make the system nonlinear in the atmospheric temperature.

    Parameters
    ----------
    params : ClimateParameters, optional
        Physical parameters. Default is the reference parameter set.
    feedbacks : FeedbackSettings, optional
        Feedback coefficients.
    forcing : ForcingSettings, optional
        Forcing shape, including the noise amplitude.

    Attributes
    ----------
    params : ClimateParameters
        Fixed for the lifetime of the model; each run only reads it.
    rng : numpy.random.Generator
        Unseeded generator used by :meth:`derivatives` when no generator
        is passed. Runs never draw from it.
    """

    def __init__(
        self,
        params: ClimateParameters = DEFAULT_PARAMETERS,
        feedbacks: FeedbackSettings = DEFAULT_FEEDBACKS,
        forcing: ForcingSettings = DEFAULT_FORCING,
    ):
        self.params = params
        self.feedbacks = feedbacks
        self.forcing = forcing
        self.rng = np.random.default_rng()
        self._validate_params()
        logger.info("Two-layer climate model with all feedbacks and forcings defined.")
        logger.debug(f"Parameters: {params}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ClimateModel":
        """Build a model from a configuration dictionary (see ``load_config``)."""
        from twolayer.utils.config import (
            parameters_from_config,
            feedbacks_from_config,
            forcing_from_config,
        )

        return cls(
            params=parameters_from_config(config),
            feedbacks=feedbacks_from_config(config),
            forcing=forcing_from_config(config),
        )

    def _validate_params(self) -> None:
        """
        Warn about parameters outside the physically meaningful range.

        Nothing is rejected: degenerate parameter sets are allowed to run
        and show up as non-finite temperatures.
        """
        p = self.params
        issues = []

        for name in ("C_a", "C_o"):
            value = getattr(p, name)
            if not value > 0:
                issues.append(f"Heat capacity {name}={value} is not positive")

        if p.k < 0:
            issues.append(f"Coupling k={p.k} is negative")

        if p.B0 <= 0:
            issues.append(f"OLR slope B0={p.B0} is not positive, ECS is undefined or negative")

        if p.S0 <= 0:
            issues.append(f"Solar constant S0={p.S0} is not positive")

        for msg in issues:
            logger.warning(msg)

        if issues:
            log_calculation_issue(
                "Parameter validation",
                "Some parameters outside physical ranges",
                p.to_dict(),
            )

    @property
    def ecs(self) -> float:
        """Equilibrium Climate Sensitivity of the parameter set."""
        return equilibrium_climate_sensitivity(self.params)

    def derivatives(
        self,
        t: float,
        state: Sequence[float],
        rng: Optional[np.random.Generator] = None,
    ) -> ClimateState:
        """
        Evaluate (dT_a/dt, dT_o/dt) with this model's settings.

        The stochastic forcing is drawn from ``rng``, or from the model's own
        generator when omitted.
        """
        return two_layer_climate_model(
            t, state, self.params, rng if rng is not None else self.rng,
            self.feedbacks, self.forcing,
        )

    def run(
        self,
        initial_state: Sequence[float] = DEFAULT_INITIAL_STATE,
        t_span: Tuple[float, float] = DEFAULT_T_SPAN,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        method: str = "Tsit5",
        rtol: float = 1e-3,
        atol: float = 1e-6,
        max_step: Optional[float] = None,
        max_steps: int = 100_000,
        n_points: Optional[int] = None,
        show_progress: bool = False,
    ) -> SimulationResults:
        """
        Integrate the model over ``t_span``.

        Each run draws its stochastic forcing from its own generator: the
        one passed as ``rng``, or ``numpy.random.default_rng(seed)``.

        Parameters
        ----------
        initial_state : sequence of float
            Initial (T_atmosphere, T_ocean) in K. Default (288, 288).
        t_span : (float, float)
            Start and end time in years. Default (0, 1000).
        seed : int, optional
            Seed for a fresh generator. Ignored when ``rng`` is given.
        rng : numpy.random.Generator, optional
            Explicit generator for the stochastic forcing.
        method : str
            Embedded Runge-Kutta scheme. Default 'Tsit5'.
        rtol, atol : float
            Relative and absolute tolerances. Defaults 1e-3 and 1e-6.
        max_step : float, optional
            Largest allowed step in years. Unbounded by default.
        max_steps : int
            Step attempt budget before the run is declared failed.
        n_points : int, optional
            Resample the solution on this many uniformly spaced times.
            The solver's own nodes are returned when omitted.
        show_progress : bool
            Show a progress bar. Default False.

        Returns
        -------
        SimulationResults
            Container with temperatures, forcing and diagnostics.

        Raises
        ------
        IntegrationError
            If the adaptive step size underflows or the step budget runs out.
        """
        # =====================================================================
        # STEP 1: Setup
        # =====================================================================
        start_step("Setup")

        try:
            t_start, t_end = float(t_span[0]), float(t_span[1])
            y0 = ClimateState(*(float(v) for v in initial_state))
            scheme = get_scheme(method)

            if rng is None:
                rng = np.random.default_rng(seed)

            logger.info(
                f"Integrating {t_start:g}-{t_end:g} years from "
                f"T_a={y0.atmosphere:.2f} K, T_o={y0.ocean:.2f} K with {scheme.name}"
            )
            end_step(success=True)

        except Exception as e:
            log_error(e, "Setup")
            end_step(success=False)
            raise

        # =====================================================================
        # STEP 2: ODE Integration
        # =====================================================================
        start_step("ODE integration")

        pbar = None
        try:
            callback = None
            if show_progress:
                pbar = tqdm(total=100, desc="Integrating ODE", unit="%", leave=True)
                last_progress = [0]

                def callback(t, y):
                    progress = int((t - t_start) / (t_end - t_start) * 100)
                    if progress > last_progress[0]:
                        pbar.update(progress - last_progress[0])
                        last_progress[0] = progress

            trajectory = integrate(
                two_layer_climate_model,
                y0,
                (t_start, t_end),
                args=(self.params, rng, self.feedbacks, self.forcing),
                method=scheme,
                rtol=rtol,
                atol=atol,
                max_step=np.inf if max_step is None else max_step,
                max_steps=max_steps,
                callback=callback,
            )

            logger.info("ODE problem solved.")
            logger.info(
                f"{trajectory.n_accepted} steps accepted, {trajectory.n_rejected} rejected, "
                f"{trajectory.n_evaluations} derivative evaluations"
            )
            end_step(success=True)

        except Exception as e:
            log_error(e, "ODE integration")
            end_step(success=False)
            raise

        finally:
            if pbar is not None:
                pbar.close()

        # =====================================================================
        # STEP 3: Post-processing
        # =====================================================================
        start_step("Post-processing")

        try:
            if n_points is not None:
                t = np.linspace(t_start, t_end, n_points)
                T_a, T_o = trajectory.interpolate(t)
            else:
                t = trajectory.t
                T_a, T_o = trajectory.atmosphere, trajectory.ocean

            temperature_difference = T_a - T_o
            forcing_profile = np.array([
                deterministic_forcing(ti, self.params, self.forcing) for ti in t
            ])

            self._validate_solution(t, T_a, T_o)
            end_step(success=True)

        except Exception as e:
            log_error(e, "Post-processing")
            end_step(success=False)
            raise

        # =====================================================================
        # STEP 4: Diagnostics
        # =====================================================================
        ecs = self.ecs
        logger.info(f"Equilibrium Climate Sensitivity (ECS): {ecs} K per CO₂ doubling")

        return SimulationResults(
            t=t,
            T_atmosphere=T_a,
            T_ocean=T_o,
            temperature_difference=temperature_difference,
            forcing=forcing_profile,
            parameters=self.params,
            simulation_params={
                "t_start": t_start,
                "t_end": t_end,
                "initial_state": tuple(y0),
                "method": scheme.name,
                "rtol": rtol,
                "atol": atol,
                "max_step": max_step,
                "max_steps": max_steps,
                "n_points": n_points,
                "seed": seed,
                "noise_amplitude": self.forcing.noise_amplitude,
            },
            diagnostics={
                "ecs": ecs,
                "n_evaluations": trajectory.n_evaluations,
                "n_accepted": trajectory.n_accepted,
                "n_rejected": trajectory.n_rejected,
                "n_nodes": len(trajectory),
                "is_finite": bool(np.all(np.isfinite(trajectory.y))),
            },
        )

    def _validate_solution(
        self,
        t: NDArray,
        T_a: NDArray,
        T_o: NDArray,
    ) -> None:
        """Report non-finite or runaway temperatures without raising."""
        issues = []

        nan_counts = [int(np.sum(np.isnan(T_a))), int(np.sum(np.isnan(T_o)))]
        if any(nan_counts):
            issues.append(f"NaN values: T_a={nan_counts[0]}, T_o={nan_counts[1]}")

        inf_counts = [int(np.sum(np.isinf(T_a))), int(np.sum(np.isinf(T_o)))]
        if any(inf_counts):
            issues.append(f"Inf values: T_a={inf_counts[0]}, T_o={inf_counts[1]}")

        reference = self.feedbacks.reference_temperature
        finite_a = T_a[np.isfinite(T_a)]
        if finite_a.size and np.max(np.abs(finite_a - reference)) > EXTREME_ANOMALY:
            issues.append(
                f"Extreme atmosphere temperature: max |T_a - {reference:g}| = "
                f"{np.max(np.abs(finite_a - reference)):.2f} K"
            )

        if issues:
            log_calculation_issue(
                "Solution validation",
                "; ".join(issues),
                {
                    "nan_counts": nan_counts,
                    "inf_counts": inf_counts,
                    "t_end": float(t[-1]),
                },
            )

    def __repr__(self) -> str:
        p = self.params
        return (
            f"ClimateModel(S0={p.S0}, C_a={p.C_a:g}, C_o={p.C_o:g}, A={p.A}, "
            f"B0={p.B0}, Fmax={p.Fmax}, k={p.k:g}, "
            f"noise={self.forcing.noise_amplitude})"
        )
