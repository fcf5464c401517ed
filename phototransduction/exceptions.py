"""
Exceptions raised by the photoreceptor simulation.

All simulation errors derive from PhototransductionError, so callers can
catch the whole family at once or a single violated precondition.
"""


class PhototransductionError(Exception):
    """Base class for photoreceptor simulation errors."""


class InvalidInputError(PhototransductionError, ValueError):
    """
    Malformed time or stimulus input.

    Raised for tme/stm length mismatch, fewer than two time samples,
    non-increasing time samples, stimulus/filter length mismatch or an
    unknown model mode.
    """


class DomainError(PhototransductionError, ValueError):
    """
    Parameter values outside the domain of the steady-state equations.

    Raised for zero dark current, or k and n values that cause division by
    zero or undefined fractional powers.
    """


class NumericError(PhototransductionError, ArithmeticError):
    """Transform length mismatch or non-finite values in the output."""
