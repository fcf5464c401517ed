# Third-party
import numpy as np
import scipy.fftpack as fftpack
from scipy.interpolate import interp1d

# Local
from phototransduction.exceptions import NumericError


class PhotoreceptorMath:
    """
    Stateless math building blocks for the photoreceptor models and calibration.
    """

    # Need object instance of this class at ProjectManager
    def __init__(self) -> None:
        pass

    def hill_function(
        self, x: float | np.ndarray, affinity: float, coefficient: float
    ) -> float | np.ndarray:
        """
        Inhibitory Hill relation 1 / (1 + (x / affinity) ** coefficient).

        Used for the calcium feedback onto guanylate cyclase.
        """
        return 1.0 / (1.0 + (x / affinity) ** coefficient)

    def cgmp_to_current(
        self, g: float | np.ndarray, k: float, n: float
    ) -> float | np.ndarray:
        """
        Outer segment current from cGMP concentration, -k * g ** n.

        Inward current is negative. Negative g with non-integer n yields nan.
        """
        return -k * np.power(g, n)

    def linear_filter_kernel(
        self, t: np.ndarray, sc_fact: float, tau_r: float, tau_d: float
    ) -> np.ndarray:
        """
        Impulse response of the linear photoreceptor model.

        Parameters
        ----------
        t : np.ndarray
            Time points in seconds.
        sc_fact : float
            Scaling factor of the filter.
        tau_r : float
            Rising phase time constant in seconds.
        tau_d : float
            Damping time constant in seconds.

        Returns
        -------
        np.ndarray
            sc_fact * ((t/tau_r)^3 / (1 + (t/tau_r)^3)) * exp(-t/tau_d), same
            shape as t.
        """
        rising = np.power(t / tau_r, 3)
        return sc_fact * (rising / (1 + rising)) * np.exp(-t / tau_d)

    def circular_convolve(self, x: np.ndarray, kernel: np.ndarray) -> np.ndarray:
        """
        Circular convolution of two equal-length sequences via the DFT.

        The product of the transforms wraps around the sequence boundary; no
        zero padding is applied. The imaginary residue of the inverse transform
        is rounding noise and is dropped.

        Raises
        ------
        NumericError
            If the transform lengths differ.
        """
        x_fft = fftpack.fft(x)
        kernel_fft = fftpack.fft(kernel)
        if x_fft.shape != kernel_fft.shape:
            raise NumericError(
                f"Transform length mismatch: {x_fft.shape[0]} vs {kernel_fft.shape[0]}"
            )
        return np.real(fftpack.ifft(x_fft * kernel_fft))

    def interpolate_data(self, x, y, kind="linear", fill_value=0.0):
        """Interpolate sampled data to a continuous function, constant fill outside x."""

        # assert that x values are sorted
        assert np.all(np.diff(x) > 0), "x values must be sorted"

        interp1d_function = interp1d(
            x,
            y,
            kind=kind,
            fill_value=fill_value,
            bounds_error=False,
        )

        return interp1d_function
