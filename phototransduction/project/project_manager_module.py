"""
Module on project management

We use dependency injection to keep the modules independent and easy to test.
During construction here at the manager level, object instances are injected
into the constructor of a "client", where they become attributes.
"""

from __future__ import annotations

# Built-in
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

# Local
from phototransduction.calibration.calibration_module import Calibration
from phototransduction.data_io.config_io import load_yaml
from phototransduction.photoreceptor.photoreceptor_math_module import PhotoreceptorMath
from phototransduction.photoreceptor.simulate_photoreceptor_module import (
    SimulatePhotoreceptor,
)

if TYPE_CHECKING:
    from phototransduction.data_io.config_io import Configuration


def _get_validation_params_method(parameters_folder: Path) -> Callable | None:
    """
    Get parameter validation method if a .py file with 'validation' in its name
    is found in the parameters/ subfolder.

    Returns:
        Callable or None: validation function if found, None otherwise
    """
    validation_files = list(parameters_folder.glob("*validation*.py"))
    match len(validation_files):
        case 0:
            print(
                f"No validation file provided in {parameters_folder}. "
                f"Proceeding without parameter validation."
            )
            return None
        case 1:
            # Local
            from phototransduction.parameters.param_validation import validate_params

            return validate_params
        case n:
            raise ValueError(
                f"Expected at most 1 validation file in {parameters_folder}, but found {n} files"
                f" with 'validation' in their name:"
                f"{[file.name for file in validation_files]}"
            )


def _dispatcher(PM: ProjectManager, config: Configuration) -> None:
    """Runs the pipeline(s) chosen in the run section of the yaml files."""
    run = config.run
    if run.simulate_photoreceptor:
        PM.simulate_photoreceptor.client()


def load_parameters() -> Configuration:
    """Load configuration parameters from the package parameters/ folder."""
    project_manager_module_file_path = Path(__file__).resolve()
    package_root_path = project_manager_module_file_path.parent.parent

    parameters_folder: Path = package_root_path.joinpath("parameters/")
    yaml_files = sorted(parameters_folder.glob("*.yaml"))
    validate_params: Callable | None = _get_validation_params_method(parameters_folder)

    config: Configuration = load_yaml(yaml_files)

    if validate_params:
        config = validate_params(config)

    return config


class ProjectManager:
    def __init__(self, config):
        """
        Main project manager.
        In init we construct other classes and inject necessary dependencies.
        """

        self.config = config

        self.photoreceptor_math = PhotoreceptorMath()

        self.calibration = Calibration(self.photoreceptor_math)

        self.simulate_photoreceptor = SimulatePhotoreceptor(
            self.config, self.photoreceptor_math
        )

    @property
    def calibration(self):
        return self._calibration

    @calibration.setter
    def calibration(self, value):
        if isinstance(value, Calibration):
            self._calibration = value
        else:
            raise AttributeError(
                "Trying to set improper calibration. calibration must be a Calibration instance."
            )

    @property
    def simulate_photoreceptor(self):
        return self._simulate_photoreceptor

    @simulate_photoreceptor.setter
    def simulate_photoreceptor(self, value):
        if isinstance(value, SimulatePhotoreceptor):
            self._simulate_photoreceptor = value
        else:
            raise AttributeError(
                "Trying to set improper simulate_photoreceptor. simulate_photoreceptor "
                "must be a SimulatePhotoreceptor instance."
            )


def main():
    start_time = time.time()
    config = load_parameters()

    if config.run.profile is True:
        import cProfile
        import pstats

        profiler = cProfile.Profile()
        profiler.enable()

    PM = ProjectManager(config)

    _dispatcher(PM, config)

    end_time = time.time()
    print(
        "Total time taken: ",
        time.strftime(
            "%H hours %M minutes %S seconds", time.gmtime(end_time - start_time)
        ),
    )

    if config.run.profile is True:
        profiler.disable()
        stats = pstats.Stats(profiler).sort_stats("tottime")
        stats.print_stats(20)


if __name__ == "__main__":
    main()
