"""
Parameter validation with Pydantic.

Each parameter in the project configuration, after being loaded, is validated
against the required type. Parameters that are derived from other parameters
are computed here.

The ParameterRecord model is the immutable input of one photoreceptor
simulation call. It coerces types, strips physical units and enforces the
sign of rates and Hill constants; preconditions that involve several
parameters are checked by the simulation itself.
"""

from __future__ import annotations

# Built-in
from typing import TYPE_CHECKING, Any, ClassVar, Literal

# Third-party
import brian2.units as b2u
import numpy as np
from brian2.units.fundamentalunits import Quantity, have_same_dimensions
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

if TYPE_CHECKING:
    # Local
    from phototransduction.data_io.config_io import Configuration


class BaseConfigModel(BaseModel):
    """
    Base class for configuration models.

    Extra parameters from the YAML files are allowed and retained. Fields left
    out of the YAML files are reported together with the default that replaces
    them.
    """

    report_missing: ClassVar[bool] = True

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def report_defaults(cls, data: Any) -> Any:
        if not cls.report_missing or not isinstance(data, dict):
            return data
        for field_name, field_content in cls.model_fields.items():
            if field_name not in data and field_content.default is not None:
                print(
                    f"Parameter '{field_name}' not provided in the YAML file(s), "
                    f"using default value: {field_content.default} (set in param_validation.py)",
                )
        return data


## From photoreceptor_parameters.yaml
class PhotoreceptorParameters(BaseConfigModel):
    """
    Physiological and linear filter parameters of a single photoreceptor.

    Defaults are a primate cone parameter set. Rate constants are in 1/s,
    currents in pA.
    """

    sigma: float = Field(
        default=22.0, gt=0, description="rhodopsin activity decay rate, 1/s"
    )
    phi: float = Field(
        default=22.0, gt=0, description="phosphodiesterase activity decay rate, 1/s"
    )
    eta: float = Field(
        default=2000.0, gt=0, description="phosphodiesterase activation rate, 1/s"
    )
    gdark: float | None = Field(
        default=20.5,
        description="dark cGMP concentration, rederived from darkCurrent in nonlinear mode",
    )
    k: float = Field(default=0.02, description="scale of the current-cGMP relation")
    n: float = Field(default=3.0, description="cooperativity of the current-cGMP relation")
    cdark: float = Field(default=1.0, gt=0, description="dark calcium concentration")
    beta: float = Field(default=9.0, gt=0, description="calcium removal rate, 1/s")
    hillaffinity: float = Field(
        default=0.5, gt=0, description="cyclase Hill affinity for calcium"
    )
    hillcoef: float = Field(default=4.0, gt=0, description="cyclase Hill coefficient")
    gamma: float = Field(
        default=10.0,
        ge=0,
        description="stimulus to opsin activity scaling, isomerizations per stimulus unit",
    )
    mode: Literal["nonlinear", "linear"] = Field(
        default="nonlinear",
        description="'nonlinear' for the phototransduction cascade, 'linear' for the filter model",
    )
    darkCurrent: float = Field(
        default=86.15, description="pA, baseline current in darkness"
    )
    ScFact: float = Field(default=1.0, description="linear filter scaling factor")
    TauR: float = Field(default=0.0216, description="s, linear filter rising phase")
    TauD: float = Field(default=0.0220, description="s, linear filter damping")

    @field_validator("darkCurrent", mode="before")
    @classmethod
    def strip_current_units(cls, v: Any) -> Any:
        if isinstance(v, Quantity):
            if not have_same_dimensions(v, b2u.pA):
                raise ValueError(f"darkCurrent must be a current, got {v}")
            return float(v / b2u.pA)
        return v


class ParameterRecord(PhotoreceptorParameters):
    """
    Immutable input of one simulation call.

    Photoreceptor parameters together with the time vector tme (s) and the
    stimulus stm. Arrays are copied and made read-only on construction.

    Examples
    --------
    >>> record = ParameterRecord(tme=np.arange(0, 1, 1e-4), stm=np.zeros(10000))
    >>> record = record.with_gamma(isom_per_watt * watts_per_stimulus_unit)
    """

    report_missing: ClassVar[bool] = False

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    tme: np.ndarray = Field(description="s, time samples")
    stm: np.ndarray = Field(description="stimulus samples, same indexing as tme")

    @field_validator("tme", mode="before")
    @classmethod
    def strip_time_units(cls, v: Any) -> np.ndarray:
        if isinstance(v, Quantity):
            if not have_same_dimensions(v, b2u.second):
                raise ValueError(f"tme must be in time units, got {v.dimensions}")
            v = np.asarray(v / b2u.second)
        return cls._as_readonly_vector(v, "tme")

    @field_validator("stm", mode="before")
    @classmethod
    def stimulus_to_array(cls, v: Any) -> np.ndarray:
        return cls._as_readonly_vector(v, "stm")

    @staticmethod
    def _as_readonly_vector(v: Any, name: str) -> np.ndarray:
        vector = np.array(v, dtype=float)
        if vector.ndim != 1:
            raise ValueError(f"{name} must be one-dimensional, got shape {vector.shape}")
        vector.flags.writeable = False
        return vector

    @classmethod
    def from_parameters(
        cls,
        parameters: PhotoreceptorParameters | dict[str, Any],
        tme: Any,
        stm: Any,
        **overrides: Any,
    ) -> ParameterRecord:
        """Combine photoreceptor parameters with time and stimulus vectors."""
        if isinstance(parameters, BaseModel):
            parameters = parameters.model_dump()
        fields = {
            key: value
            for key, value in dict(parameters).items()
            if key in PhotoreceptorParameters.model_fields
        }
        fields.update(overrides)
        return cls(tme=tme, stm=stm, **fields)

    def with_gamma(self, gamma: float) -> ParameterRecord:
        """Return a copy with a new stimulus scaling, e.g. from calibration."""
        return self.with_overrides(gamma=gamma)

    def with_overrides(self, **overrides: Any) -> ParameterRecord:
        """Return a validated copy with some fields replaced."""
        return type(self).model_validate({**self.model_dump(), **overrides})


## From simulation_parameters.yaml
class SimulationParameters(BaseConfigModel):
    duration_seconds: float = Field(default=1.0, gt=0, description="s")
    dt_seconds: float = Field(default=0.0001, gt=0, description="s, 0.0001 = 0.1 ms")
    return_states: bool = Field(
        default=False,
        description="Keep the cascade state trajectories in the simulation result",
    )

    @computed_field
    @property
    def n_timepoints(self) -> int:
        return int(round(self.duration_seconds / self.dt_seconds))

    @model_validator(mode="after")
    def check_time_grid(self):
        if self.n_timepoints < 2:
            raise ValueError(
                f"duration_seconds={self.duration_seconds} and dt_seconds={self.dt_seconds} "
                f"give fewer than 2 time points."
            )
        return self


class RunParameters(BaseConfigModel):
    simulate_photoreceptor: bool = True
    profile: bool = False


class ConfigParams(BaseConfigModel):
    photoreceptor_parameters: PhotoreceptorParameters
    simulation_parameters: SimulationParameters
    run: RunParameters


# Façade
def validate_params(config: Configuration) -> Configuration:
    """
    Validate and convert parameters to the appropriate types.

    Parameters
    ----------
    config:
        Configuration object with the loaded configuration from the YAML files

    Returns
    -------
    Configuration:
        The same Configuration object, now holding the validated parameters
        plus any computed field from ConfigParams.
    """

    validated_config: ConfigParams = ConfigParams(**config.as_dict())
    validated_dict: dict = validated_config.model_dump()

    config.clear()
    config.update(validated_dict)

    return config
