import numpy

__all__ = ["density_offset", "oc_update"]


def density_offset(min_density, max_density):
    """The point the multiplicative update scales about, slightly below the lower bound."""
    return min_density - 0.01 * (max_density - min_density)


def oc_update(p_old, dfdp, dvdp, multiplier, stabilization_exponent, move_limit,
              min_density, max_density, offset=None, out=None):
    """Apply the optimality criteria update to every design variable.

    Each density is scaled about `offset` by ``(-dfdp/dvdp/multiplier)**stabilization_exponent``,
    the change is limited to `move_limit` and the result is clipped to
    ``[min_density, max_density]``.

    Variables with zero volume sensitivity keep their value, as does every
    variable when the multiplier is zero or the ratio is undefined. A negative
    sensitivity ratio is floored at zero, which moves the variable toward the
    lower bound.

    Args:
        p_old (numpy.ndarray): The densities before the update.
        dfdp (numpy.ndarray): Objective gradient.
        dvdp (numpy.ndarray): Volume gradient.
        multiplier (float): The volume multiplier. Zero leaves the densities unchanged.
        stabilization_exponent (float): Positive damping exponent.
        move_limit (float): Largest change of a single density.
        min_density (float): Lower density bound.
        max_density (float): Upper density bound.
        offset (float): Defaults to :func:`density_offset`.
        out (numpy.ndarray): Optional array for the result.

    Returns:
        numpy.ndarray: The updated densities.
    """
    if offset is None:
        offset = density_offset(min_density, max_density)

    be = numpy.ones_like(p_old, dtype=float)
    scale = dvdp * multiplier
    numpy.divide(-dfdp, scale, out=be, where=(scale != 0.0))
    numpy.nan_to_num(be, copy=False, nan=1.0)
    numpy.maximum(be, 0.0, out=be)

    p_new = (p_old - offset) * be ** stabilization_exponent + offset
    step = numpy.clip(p_new - p_old, -move_limit, move_limit)
    return numpy.clip(p_old + step, min_density, max_density, out=out)
