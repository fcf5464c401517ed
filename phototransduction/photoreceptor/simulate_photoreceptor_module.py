# Built-in
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

# Third-party
import numpy as np

# Local
from phototransduction.exceptions import DomainError, InvalidInputError, NumericError
from phototransduction.parameters.param_validation import ParameterRecord
from phototransduction.photoreceptor.photoreceptor_math_module import PhotoreceptorMath
from phototransduction.project.project_utilities_module import PrintableMixin


@dataclass(frozen=True)
class CascadeState:
    """Phototransduction cascade state at one time point."""

    r: float  # rhodopsin activity
    p: float  # phosphodiesterase activity
    c: float  # calcium concentration
    s: float  # cyclase synthesis rate
    g: float  # cGMP concentration


@dataclass(frozen=True)
class SteadyState:
    """Dark-adapted constants derived from the photoreceptor parameters."""

    gdark: float
    cur2ca: float
    smax: float
    initial_state: CascadeState


@dataclass
class StateTrajectory:
    """
    Preallocated cascade state arrays, one entry per time point.

    Index 0 holds the steady-state initial values; the integrator writes the
    remaining entries in increasing index order.
    """

    r: np.ndarray
    p: np.ndarray
    c: np.ndarray
    s: np.ndarray
    g: np.ndarray

    @classmethod
    def preallocate(
        cls, n_timepoints: int, initial_state: CascadeState
    ) -> "StateTrajectory":
        trajectory = cls(*(np.zeros(n_timepoints) for _ in range(5)))
        trajectory.put(0, initial_state)
        return trajectory

    def at(self, index: int) -> CascadeState:
        return CascadeState(
            self.r[index], self.p[index], self.c[index], self.s[index], self.g[index]
        )

    def put(self, index: int, state: CascadeState) -> None:
        self.r[index] = state.r
        self.p[index] = state.p
        self.c[index] = state.c
        self.s[index] = state.s
        self.g[index] = state.g


@dataclass(frozen=True)
class SimulationResult:
    """
    Output of one simulation call.

    Attributes
    ----------
    response : np.ndarray
        Predicted current, same length as the time vector.
    mode : str
        Model that produced the response, "nonlinear" or "linear".
    gdark : float or None
        Dark cGMP concentration. Derived from darkCurrent in nonlinear mode,
        the supplied value in linear mode.
    states : StateTrajectory or None
        Cascade trajectories, nonlinear mode with return_states only.
    linear_filter : np.ndarray or None
        Impulse response filter, linear mode only.
    """

    response: np.ndarray
    mode: str
    gdark: Optional[float]
    states: Optional[StateTrajectory] = None
    linear_filter: Optional[np.ndarray] = None


class SteadyStateInitializer:
    """
    Derives dark-adapted constants and the initial cascade state.
    """

    def compute_constants(self, params: ParameterRecord) -> SteadyState:
        """
        Compute gdark, cur2ca, smax and the initial state for the nonlinear model.

        Parameters
        ----------
        params : ParameterRecord
            Photoreceptor parameters. Any supplied gdark is ignored.

        Returns
        -------
        SteadyState
            gdark = (2 * darkCurrent / k) ** (1 / n),
            cur2ca = beta * cdark / darkCurrent,
            smax = (eta / phi) * gdark * (1 + (cdark / hillaffinity) ** hillcoef).

        Raises
        ------
        DomainError
            If darkCurrent is zero, k or n are not positive, or darkCurrent
            is negative, which would give a negative dark cGMP concentration.
        """
        if params.darkCurrent == 0:
            raise DomainError("darkCurrent must be nonzero in nonlinear mode.")
        if params.k <= 0:
            raise DomainError(f"k must be positive, got k={params.k}.")
        if params.n <= 0:
            raise DomainError(f"n must be positive, got n={params.n}.")

        gdark_base = 2 * params.darkCurrent / params.k
        if gdark_base < 0:
            raise DomainError(
                f"darkCurrent and k must have the same sign, got "
                f"darkCurrent={params.darkCurrent}, k={params.k}."
            )

        gdark = gdark_base ** (1 / params.n)
        cur2ca = params.beta * params.cdark / params.darkCurrent
        smax = (
            (params.eta / params.phi)
            * gdark
            * (1 + (params.cdark / params.hillaffinity) ** params.hillcoef)
        )

        initial_state = CascadeState(
            r=0.0,
            p=params.eta / params.phi,
            c=params.cdark,
            s=gdark * params.eta / params.phi,
            g=gdark,
        )

        return SteadyState(gdark, cur2ca, smax, initial_state)


class KineticIntegrator:
    """
    Forward Euler integration of the five coupled cascade equations.

    Parameters
    ----------
    photoreceptor_math : PhotoreceptorMath
        Provides the cyclase Hill relation.
    """

    def __init__(self, photoreceptor_math: PhotoreceptorMath) -> None:
        self.photoreceptor_math = photoreceptor_math

    def step(
        self,
        previous: CascadeState,
        stimulus_sample: float,
        params: ParameterRecord,
        steady_state: SteadyState,
        time_step: float,
    ) -> CascadeState:
        """
        Advance the cascade by one time step.

        The update order is fixed. r adds the stimulus sample to its decayed
        previous value and s reads the c computed in this step; p, c and g
        only read the previous state. Do not vectorize.
        """
        # Decay of previous r, then the previous stimulus sample, not scaled by the step
        r = previous.r + time_step * (-params.sigma * previous.r)
        r += params.gamma * stimulus_sample

        # Previous r, not the new one
        p = previous.p + time_step * (previous.r + params.eta - params.phi * previous.p)

        c = previous.c + time_step * (
            steady_state.cur2ca * params.k * np.power(previous.g, params.n)
            - params.beta * previous.c
        )

        # New c from this step
        s = steady_state.smax * self.photoreceptor_math.hill_function(
            c, params.hillaffinity, params.hillcoef
        )

        # Previous s and p
        g = previous.g + time_step * (previous.s - previous.p * previous.g)

        return CascadeState(r, p, c, s, g)

    def integrate(
        self, params: ParameterRecord, steady_state: SteadyState
    ) -> StateTrajectory:
        """
        Integrate the cascade over the whole time vector.

        The step size is taken from the first two time samples and reused for
        every step, also when later samples are unevenly spaced.

        Raises
        ------
        InvalidInputError
            If there are fewer than two time samples.
        """
        n_timepoints = params.tme.shape[0]
        if n_timepoints < 2:
            raise InvalidInputError(
                f"At least 2 time samples are needed for integration, got {n_timepoints}."
            )

        time_step = params.tme[1] - params.tme[0]
        states = StateTrajectory.preallocate(n_timepoints, steady_state.initial_state)

        for idx in range(1, n_timepoints):
            next_state = self.step(
                states.at(idx - 1), params.stm[idx - 1], params, steady_state, time_step
            )
            states.put(idx, next_state)

        return states


class ResponseMapper:
    """
    Maps the cGMP trajectory to outer segment current.
    """

    def __init__(self, photoreceptor_math: PhotoreceptorMath) -> None:
        self.photoreceptor_math = photoreceptor_math

    def map_response(self, g: np.ndarray, k: float, n: float) -> np.ndarray:
        return self.photoreceptor_math.cgmp_to_current(g, k, n)


class LinearFilterModel:
    """
    Linear photoreceptor model, stimulus convolved with a fixed impulse response.
    """

    def __init__(self, photoreceptor_math: PhotoreceptorMath) -> None:
        self.photoreceptor_math = photoreceptor_math

    def build_filter(self, params: ParameterRecord) -> np.ndarray:
        return self.photoreceptor_math.linear_filter_kernel(
            params.tme, params.ScFact, params.TauR, params.TauD
        )

    def respond(self, params: ParameterRecord, linear_filter: np.ndarray) -> np.ndarray:
        """
        Circular convolution of the stimulus with the filter, minus darkCurrent.

        Raises
        ------
        InvalidInputError
            If stimulus and filter lengths differ.
        """
        if params.stm.shape != linear_filter.shape:
            raise InvalidInputError(
                f"Stimulus length {params.stm.shape[0]} does not match "
                f"filter length {linear_filter.shape[0]}."
            )
        convolved = self.photoreceptor_math.circular_convolve(params.stm, linear_filter)
        return convolved - params.darkCurrent


class PhotoreceptorModelBase(ABC):
    """
    Base class for the photoreceptor model variants.

    Parameters
    ----------
    photoreceptor_math : PhotoreceptorMath
        Math utilities shared by the model components.
    """

    def __init__(self, photoreceptor_math: PhotoreceptorMath) -> None:
        self._photoreceptor_math = photoreceptor_math

    @property
    def photoreceptor_math(self) -> PhotoreceptorMath:
        return self._photoreceptor_math

    @abstractmethod
    def simulate(
        self, params: ParameterRecord, return_states: bool = False
    ) -> SimulationResult:
        pass


class NonlinearModel(PhotoreceptorModelBase):
    """
    Biophysical phototransduction cascade model.

    Steady state from dark physiology, forward Euler integration of the
    cascade, then the cGMP to current transfer function.
    """

    def __init__(self, photoreceptor_math: PhotoreceptorMath) -> None:
        super().__init__(photoreceptor_math)
        self.initializer = SteadyStateInitializer()
        self.integrator = KineticIntegrator(photoreceptor_math)
        self.mapper = ResponseMapper(photoreceptor_math)

    def simulate(
        self, params: ParameterRecord, return_states: bool = False
    ) -> SimulationResult:
        steady_state = self.initializer.compute_constants(params)
        states = self.integrator.integrate(params, steady_state)
        response = self.mapper.map_response(states.g, params.k, params.n)

        return SimulationResult(
            response=response,
            mode="nonlinear",
            gdark=steady_state.gdark,
            states=states if return_states else None,
        )


class LinearModel(PhotoreceptorModelBase):
    """
    Linear filter model; the state trajectory does not exist in this variant.
    """

    def __init__(self, photoreceptor_math: PhotoreceptorMath) -> None:
        super().__init__(photoreceptor_math)
        self.filter_model = LinearFilterModel(photoreceptor_math)

    def simulate(
        self, params: ParameterRecord, return_states: bool = False
    ) -> SimulationResult:
        linear_filter = self.filter_model.build_filter(params)
        response = self.filter_model.respond(params, linear_filter)

        return SimulationResult(
            response=response,
            mode="linear",
            gdark=params.gdark,
            linear_filter=linear_filter,
        )


class SimulatePhotoreceptor(PrintableMixin):
    """
    Predicts photoreceptor current in response to a light stimulus.

    The model variant is chosen once per call from the record's mode. Each
    call is independent; nothing is kept between calls, so separate records
    can be simulated in parallel.

    Parameters
    ----------
    config : Configuration
        Configuration parameters object.
    photoreceptor_math : PhotoreceptorMath
        Math utilities for the photoreceptor models.
    """

    model_variants: Dict[str, Type[PhotoreceptorModelBase]] = {
        "nonlinear": NonlinearModel,
        "linear": LinearModel,
    }

    def __init__(self, config: Any, photoreceptor_math: PhotoreceptorMath) -> None:
        self._config: Any = config
        self._photoreceptor_math: PhotoreceptorMath = photoreceptor_math

    @property
    def config(self) -> Any:
        return self._config

    @property
    def photoreceptor_math(self) -> PhotoreceptorMath:
        return self._photoreceptor_math

    def _validate_time_and_stimulus(self, params: ParameterRecord) -> None:
        n_timepoints = params.tme.shape[0]
        if params.stm.shape[0] != n_timepoints:
            raise InvalidInputError(
                f"Time vector has {n_timepoints} samples but stimulus has "
                f"{params.stm.shape[0]}."
            )
        if n_timepoints < 2:
            raise InvalidInputError(
                f"At least 2 time samples are required, got {n_timepoints}."
            )
        if not np.all(np.diff(params.tme) > 0):
            raise InvalidInputError("Time samples must be strictly increasing.")

    def _select_model(self, mode: str) -> PhotoreceptorModelBase:
        try:
            model_class = self.model_variants[mode]
        except KeyError as e:
            raise InvalidInputError(
                f"Unknown mode '{mode}', expected one of {list(self.model_variants)}."
            ) from e
        return model_class(self.photoreceptor_math)

    def simulate(
        self, params: ParameterRecord, return_states: bool = False
    ) -> SimulationResult:
        """
        Run one simulation.

        Parameters
        ----------
        params : ParameterRecord
            Parameters, time vector and stimulus.
        return_states : bool, optional
            Keep the cascade trajectories in the result (nonlinear mode).

        Returns
        -------
        SimulationResult
            The response and the derived gdark.

        Raises
        ------
        InvalidInputError
            Time/stimulus length mismatch, fewer than 2 samples or
            non-increasing time samples.
        DomainError
            Steady state cannot be derived from the parameters.
        NumericError
            The response contains non-finite values.
        """
        self._validate_time_and_stimulus(params)
        model = self._select_model(params.mode)
        result = model.simulate(params, return_states=return_states)

        if not np.all(np.isfinite(result.response)):
            n_bad = np.count_nonzero(~np.isfinite(result.response))
            raise NumericError(
                f"{params.mode} model produced {n_bad} non-finite response values."
            )

        # Check for existing loggers (python builtin, set up by the calling application)
        if logging.getLogger().hasHandlers():
            logging.info(
                f"Simulated {params.mode} photoreceptor, {params.tme.shape[0]} samples"
            )

        return result

    def _get_default_tvec(self) -> np.ndarray:
        simulation_parameters = self.config.simulation_parameters
        n_timepoints = simulation_parameters["n_timepoints"]
        return np.arange(n_timepoints) * simulation_parameters["dt_seconds"]

    def client(
        self,
        stimulus: np.ndarray | None = None,
        tvec: np.ndarray | None = None,
        return_states: bool | None = None,
        **overrides: Any,
    ) -> SimulationResult:
        """
        Simulate with the configured photoreceptor parameters.

        Parameters
        ----------
        stimulus : np.ndarray or None, optional
            Stimulus samples. If None, darkness (zeros) over the time vector.
        tvec : np.ndarray or None, optional
            Time vector in seconds. If None, built from the configured
            duration_seconds and dt_seconds.
        return_states : bool or None, optional
            If None, taken from the configuration.
        **overrides
            Photoreceptor parameters replacing the configured ones for this
            call only, e.g. mode="linear" or gamma=isom_per_watt.

        Returns
        -------
        SimulationResult
        """
        if tvec is None:
            tvec = self._get_default_tvec()
        if stimulus is None:
            stimulus = np.zeros(np.shape(tvec)[0])
        if return_states is None:
            return_states = self.config.simulation_parameters["return_states"]

        params = ParameterRecord.from_parameters(
            self.config.photoreceptor_parameters, tvec, stimulus, **overrides
        )

        print(f"\nRunning {params.mode} photoreceptor model...")
        result = self.simulate(params, return_states=return_states)
        print(
            f"Response from {result.response[0]:.2f} to {result.response[-1]:.2f}, "
            f"{result.response.shape[0]} samples"
        )

        return result
