from jax import jit
from functools import partial
# import external libraries

# Field boundary kinds per (axis, side).
# Only 'pec' is acted upon here; the other kinds are carried so that a PEC face
# can be told apart from the rest.

FIELD_BOUNDARY_TYPES = ('pec', 'periodic', 'absorbing', 'open', 'none')

BOUNDARY_ALIASES = {
    'conducting': 'pec',
    'pml': 'absorbing',
}

SIDES = ('lo', 'hi')


def normalize_boundary_type(kind):
    """
    Convert a user supplied boundary name to one of the known field boundary kinds.

    Args:
        kind (str): Boundary name, case insensitive.

    Returns:
        str: The normalized boundary kind.

    Raises:
        ValueError: If the boundary kind is not known.
    """
    kind = BOUNDARY_ALIASES.get(kind.lower(), kind.lower())
    if kind not in FIELD_BOUNDARY_TYPES:
        raise ValueError(f"Unknown field boundary type: {kind}")
    return kind


def build_field_boundaries(lo, hi):
    """
    Build a boundary table from the lower and upper boundary kinds of each axis.

    Args:
        lo (sequence): Boundary kind on the lower side of every active axis.
        hi (sequence): Boundary kind on the upper side of every active axis.

    Returns:
        dict: {'lo': tuple, 'hi': tuple}
    """
    lo = tuple(normalize_boundary_type(k) for k in lo)
    hi = tuple(normalize_boundary_type(k) for k in hi)
    if len(lo) != len(hi):
        raise ValueError("field_boundary_lo and field_boundary_hi must have the same length")

    for axis, (l, h) in enumerate(zip(lo, hi)):
        if (l == 'periodic') != (h == 'periodic'):
            raise ValueError(f"Axis {axis} is periodic on one side only")
    # periodicity is a property of the axis, not of a side

    return {'lo': lo, 'hi': hi}


def read_field_boundaries_from_toml(config, dim):
    """
    Read the field boundary kinds from a configuration dictionary.

    The kinds are read from 'field_boundary_lo' and 'field_boundary_hi' in the
    'simulation_parameters' table and default to periodic on every axis.

    Args:
        config (dict): Configuration dictionary loaded from a TOML file.
        dim (int): Number of active spatial axes.

    Returns:
        dict: The boundary table.
    """
    parameters = config.get('simulation_parameters', {}) if config is not None else {}
    lo = parameters.get('field_boundary_lo', ['periodic'] * dim)
    hi = parameters.get('field_boundary_hi', ['periodic'] * dim)
    if isinstance(lo, str):
        lo = [lo] * dim
    if isinstance(hi, str):
        hi = [hi] * dim
    if len(lo) != dim or len(hi) != dim:
        raise ValueError(f"Expected {dim} field boundary entries per side")
    return build_field_boundaries(lo, hi)


def check_boundaries(boundaries, dim):
    """
    Validate that a boundary table has an entry for every (axis, side).
    """
    for side in SIDES:
        assert side in boundaries, f"Missing '{side}' field boundaries"
        assert len(boundaries[side]) == dim, f"Expected {dim} '{side}' field boundaries, got {len(boundaries[side])}"


def is_pec(boundaries, axis, side):
    return boundaries[side][axis] == 'pec'


def is_any_boundary_pec(boundaries):
    """
    Check whether any face of the domain is a perfect electric conductor.

    Args:
        boundaries (dict): The boundary table.

    Returns:
        bool: True if at least one (axis, side) is 'pec'.
    """
    for side in SIDES:
        for kind in boundaries[side]:
            if kind == 'pec':
                return True
    return False


def periodicity_from_boundaries(boundaries):
    """
    Periodicity of every axis: an axis is periodic when both of its sides are periodic.
    """
    return tuple(l == 'periodic' and h == 'periodic' for l, h in zip(boundaries['lo'], boundaries['hi']))


@partial(jit, static_argnums=(1,))
def apply_zero_boundary_condition(field, axes):
    """
    Apply zero boundary conditions to the given field along the selected axes.

    Args:
        field (ndarray): The field to which the zero boundary condition is applied.
        axes (tuple): Axes whose first and last nodes are set to zero.

    Returns:
        ndarray: The field with zero boundary conditions applied.
    """
    for axis in axes:
        first = [slice(None)] * field.ndim
        last = [slice(None)] * field.ndim
        first[axis] = 0
        last[axis] = -1
        field = field.at[tuple(first)].set(0)
        field = field.at[tuple(last)].set(0)

    return field
