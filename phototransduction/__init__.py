"""
Photoreceptor phototransduction simulator.
"""

# Built-in
from importlib.metadata import version as _installed_version
from pathlib import Path
from typing import Callable

# Third-party
import tomli

# Local
from .calibration.calibration_module import Spectrum
from .data_io.config_io import Configuration
from .exceptions import (
    DomainError,
    InvalidInputError,
    NumericError,
    PhototransductionError,
)
from .parameters.param_validation import ParameterRecord
from .photoreceptor.photoreceptor_math_module import PhotoreceptorMath
from .photoreceptor.simulate_photoreceptor_module import SimulationResult
from .project.project_manager_module import ProjectManager as _ProjectManager
from .project.project_manager_module import load_parameters as _load_parameters

config: Configuration = _load_parameters()
PM: _ProjectManager = _ProjectManager(config)

# This connects the top-level phototransduction namespace to the various modules.
isom_per_watt: Callable = PM.calibration.isom_per_watt
photoreceptor_math: PhotoreceptorMath = PM.photoreceptor_math
simulate: Callable = PM.simulate_photoreceptor.simulate
simulate_photoreceptor: Callable = PM.simulate_photoreceptor.client


__all__ = [
    "config",
    "DomainError",
    "InvalidInputError",
    "isom_per_watt",
    "NumericError",
    "ParameterRecord",
    "PhototransductionError",
    "photoreceptor_math",
    "simulate",
    "simulate_photoreceptor",
    "SimulationResult",
    "Spectrum",
]

del (_load_parameters, _ProjectManager)


def get_version():
    pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
    if not pyproject_path.exists():
        return _installed_version("phototransduction")
    with open(pyproject_path, "rb") as f:
        data = tomli.load(f)
        return data["tool"]["poetry"]["version"]


__version__ = get_version()
