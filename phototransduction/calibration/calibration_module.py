"""
Stimulus calibration: isomerizations per watt from device and photoreceptor spectra.

The result is the stimulus scaling (gamma) for a photoreceptor simulation
when the stimulus is given in watts. It is computed once per device and
photoreceptor type and handed over by the caller, e.g.

    >>> gamma = calibration.isom_per_watt(device_spectrum, cone_spectrum)
    >>> record = record.with_gamma(gamma)
"""

from __future__ import annotations

# Built-in
from dataclasses import dataclass
from typing import Any, Mapping

# Third-party
import numpy as np
from scipy.integrate import trapezoid

# Local
from phototransduction.exceptions import DomainError, InvalidInputError
from phototransduction.photoreceptor.photoreceptor_math_module import PhotoreceptorMath


@dataclass(frozen=True)
class Spectrum:
    """
    Sampled spectrum.

    Attributes
    ----------
    wavelengths : np.ndarray
        Wavelengths, in nm (any value > 1) or in m, in any order.
    values : np.ndarray
        Spectral power (device) or sensitivity (photoreceptor) at each wavelength.
    """

    wavelengths: np.ndarray
    values: np.ndarray

    @classmethod
    def from_any(cls, spectrum: Spectrum | Mapping[str, Any]) -> Spectrum:
        if isinstance(spectrum, Spectrum):
            return spectrum
        return cls(
            np.asarray(spectrum["wavelengths"], dtype=float),
            np.asarray(spectrum["values"], dtype=float),
        )


class Calibration:
    """
    Converts spectra to an isomerization rate per watt.

    Parameters
    ----------
    photoreceptor_math : PhotoreceptorMath
        Provides the interpolation used for resampling the device spectrum.
    """

    def __init__(self, photoreceptor_math: PhotoreceptorMath) -> None:
        self.photoreceptor_math = photoreceptor_math

    def _wavelengths_in_meters(self, wavelengths: np.ndarray) -> np.ndarray:
        # Values above 1 cannot be meters for visible light
        if np.max(wavelengths) > 1:
            return wavelengths * 1e-9
        return wavelengths

    def _prepare(self, spectrum: Spectrum, name: str) -> Spectrum:
        if spectrum.wavelengths.ndim != 1 or spectrum.wavelengths.shape != spectrum.values.shape:
            raise InvalidInputError(
                f"{name} wavelengths and values must be 1-D sequences of equal length, "
                f"got {spectrum.wavelengths.shape} and {spectrum.values.shape}."
            )
        if spectrum.wavelengths.shape[0] < 2:
            raise InvalidInputError(f"{name} needs at least 2 wavelength samples.")

        # Spectra may be sampled high to low
        order = np.argsort(spectrum.wavelengths, kind="stable")
        wavelengths = spectrum.wavelengths[order]
        if np.any(np.diff(wavelengths) <= 0):
            raise InvalidInputError(f"{name} has repeated wavelengths.")

        return Spectrum(
            self._wavelengths_in_meters(wavelengths),
            np.clip(spectrum.values[order], 0, None),
        )

    def isom_per_watt(
        self,
        device_spectrum: Spectrum | Mapping[str, Any],
        photoreceptor_spectrum: Spectrum | Mapping[str, Any],
    ) -> float:
        """
        Isomerizations per second per watt of device output.

        Parameters
        ----------
        device_spectrum : Spectrum or mapping
            Spectral power distribution of the light source, with keys
            "wavelengths" and "values" if given as a mapping.
        photoreceptor_spectrum : Spectrum or mapping
            Spectral sensitivity of the photoreceptor, same structure.

        Returns
        -------
        float
            Ratio of photon flux weighted by sensitivity to device power, both
            integrated over the photoreceptor wavelength grid.

        Raises
        ------
        InvalidInputError
            If a spectrum is malformed or repeats a wavelength.
        DomainError
            If the device has no power over the photoreceptor wavelengths.

        Notes
        -----
        Wavelengths are in nm when their maximum exceeds 1, otherwise in m, and
        may be given in any order; each spectrum is sorted by wavelength.
        Negative spectral values are clamped to zero. The device spectrum is
        resampled onto the photoreceptor wavelengths by linear interpolation,
        zero outside the device range.
        """
        # Constants
        h = 6.62607004e-34  # Planck's constant in J·s
        c = 299792458  # Speed of light in m/s

        device = self._prepare(Spectrum.from_any(device_spectrum), "Device spectrum")
        photoreceptor = self._prepare(
            Spectrum.from_any(photoreceptor_spectrum), "Photoreceptor spectrum"
        )
        wavelengths = photoreceptor.wavelengths

        device_interp = self.photoreceptor_math.interpolate_data(
            device.wavelengths, device.values, kind="linear", fill_value=0.0
        )
        device_power = device_interp(wavelengths)

        # Energy of a photon at each wavelength in joules
        E_photon = (h * c) / wavelengths

        isomerizations = trapezoid(device_power / E_photon * photoreceptor.values, wavelengths)
        power = trapezoid(device_power, wavelengths)

        if power <= 0:
            raise DomainError(
                "Device spectrum has no power over the photoreceptor wavelengths."
            )

        return float(isomerizations / power)
