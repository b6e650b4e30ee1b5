"""Relative-difference comparison for arbitrary-precision integers.

All arithmetic is integer so values far beyond float range (Q96 prices,
token amounts with 18 decimals) compare without precision loss.

Resolution floor: the tolerance fraction is scaled by ``RESOLUTION`` and
rounded half-up to an integer number of parts per million. Fractions below
0.5 ppm therefore round to zero, which still admits any difference that
truncates to 0 ppm (less than one part per million); finer-grained
tolerances are silently coarsened to the nearest ppm.
"""

import math

# Parts-per-million scale: six significant digits of tolerance resolution
RESOLUTION = 1_000_000

# 0.001 = 0.1%
DEFAULT_TOLERANCE = 0.001


def tolerance_units(tolerance_fraction: float) -> int:
    """Convert a tolerance fraction to integer ppm, rounding half-up.

    Example: 0.001 -> 1000, 0.0000006 -> 1, 0.0000004 -> 0
    """
    return math.floor(tolerance_fraction * RESOLUTION + 0.5)


def relative_difference_ppm(expected: int, actual: int) -> int:
    """Truncated |expected - actual| / max(|expected|, |actual|) in ppm.

    Both-zero is a zero difference.
    """
    if expected == 0 and actual == 0:
        return 0
    difference = abs(expected - actual)
    max_magnitude = max(abs(expected), abs(actual))
    return difference * RESOLUTION // max_magnitude


def is_within_tolerance(
    expected: int, actual: int, tolerance_fraction: float = DEFAULT_TOLERANCE
) -> bool:
    """Check whether two integers agree within a relative tolerance.

    Args:
        expected: Recorded value
        actual: Observed value
        tolerance_fraction: Allowed relative difference (0.001 = 0.1%)

    Returns:
        True if both are zero, or the relative difference in ppm is at most
        the rounded tolerance. A zero compared with a non-zero never passes.
    """
    if expected == 0 and actual == 0:
        return True

    # Zero against non-zero fails at any tolerance, 100% included
    if expected == 0 or actual == 0:
        return False

    difference = abs(expected - actual)
    max_magnitude = max(abs(expected), abs(actual))
    if max_magnitude == 0:
        return False

    return difference * RESOLUTION // max_magnitude <= tolerance_units(tolerance_fraction)
