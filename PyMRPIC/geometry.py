import numpy as np
# import external libraries

# Mesh levels are described by plain dictionaries ("worlds"), one per level.
# Index bounds are nodal: the boundary planes sit on nodes domain_lo and domain_hi,
# and the cells of the level are domain_lo .. domain_hi-1.

AXIS_DIRECTIONS = {
    1: (2,),        # 1D: z
    2: (0, 2),      # 2D: x, z
    3: (0, 1, 2),   # 3D: x, y, z
}

AXIS_NAMES = ('x', 'y', 'z')


def axis_directions(dim):
    """
    Cartesian direction (0=x, 1=y, 2=z) carried by each active axis.

    Args:
        dim (int): Number of active spatial axes.

    Returns:
        tuple: One Cartesian direction per active axis.
    """
    assert dim in AXIS_DIRECTIONS, f"Unsupported number of dimensions: {dim}"
    return AXIS_DIRECTIONS[dim]


def coarsen_domain(domain_lo, domain_hi, ratio):
    """
    Coarsen nodal domain bounds by a refinement ratio.

    The bounds are coarsened the way the equivalent cell box is coarsened:
    the lower node is floor-divided and the upper node is the node after the
    last coarsened cell.

    Args:
        domain_lo (tuple): Lower boundary node per axis.
        domain_hi (tuple): Upper boundary node per axis.
        ratio (tuple): Refinement ratio per axis.

    Returns:
        tuple: Coarsened (domain_lo, domain_hi).
    """
    lo = tuple(int(l // r) for l, r in zip(domain_lo, ratio))
    hi = tuple(int((h - 1) // r + 1) for h, r in zip(domain_hi, ratio))
    return lo, hi


def refine_domain(domain_lo, domain_hi, ratio):
    lo = tuple(int(l * r) for l, r in zip(domain_lo, ratio))
    hi = tuple(int(h * r) for h, r in zip(domain_hi, ratio))
    return lo, hi


def per_axis(value, dim):
    """
    Broadcast a scalar (or validate a sequence) to one value per active axis.
    """
    if np.ndim(value) == 0:
        return tuple(value for _ in range(dim))
    value = tuple(value)
    assert len(value) == dim, f"Expected {dim} values, got {len(value)}"
    return value


def build_level_worlds(simulation_parameters, periodic=None):
    """
    Build the geometry dictionary of every mesh level.

    Args:
        simulation_parameters (dict): Simulation parameters with the keys
            'dim', 'geometry', 'n_cell', 'prob_lo', 'prob_hi', 'max_level', 'ref_ratio',
            'ngrow' and 'ng_fieldgather'.
        periodic (tuple, optional): Periodicity of each active axis. Defaults to non periodic.

    Returns:
        list: One world dictionary per level, level 0 first.
    """
    dim = simulation_parameters['dim']
    n_cell = per_axis(simulation_parameters['n_cell'], dim)
    prob_lo = per_axis(simulation_parameters['prob_lo'], dim)
    prob_hi = per_axis(simulation_parameters['prob_hi'], dim)
    max_level = simulation_parameters['max_level']
    ref_ratio = per_axis(simulation_parameters['ref_ratio'], dim)
    ngrow = per_axis(simulation_parameters['ngrow'], dim)
    ng_fieldgather = per_axis(simulation_parameters['ng_fieldgather'], dim)
    # read the mesh parameters

    if periodic is None:
        periodic = tuple(False for _ in range(dim))

    assert all(g <= n for g, n in zip(ng_fieldgather, ngrow)), "gather halo wider than the field halo"

    levels = []
    domain_lo = tuple(0 for _ in range(dim))
    domain_hi = tuple(int(n) for n in n_cell)
    dx = tuple((h - l) / n for l, h, n in zip(prob_lo, prob_hi, n_cell))
    ratio = tuple(1 for _ in range(dim))
    # level 0 geometry

    for lev in range(max_level + 1):
        if lev > 0:
            ratio = tuple(int(r) for r in ref_ratio)
            domain_lo, domain_hi = refine_domain(domain_lo, domain_hi, ratio)
            dx = tuple(d / r for d, r in zip(dx, ratio))
        # refine the previous level

        world = {
            'lev': lev,
            'dim': dim,
            'geometry': simulation_parameters['geometry'],
            'axis_directions': axis_directions(dim),
            'domain_lo': domain_lo,
            'domain_hi': domain_hi,
            'dx': dx,
            'prob_lo': tuple(prob_lo),
            'periodic': tuple(bool(p) for p in periodic),
            'ref_ratio': ratio,
            'ngrow': tuple(int(g) for g in ngrow),
            'ng_fieldgather': tuple(int(g) for g in ng_fieldgather),
        }
        levels.append(world)

    return levels


def domain_for_patch(levels, lev, patch_type):
    """
    Nodal domain bounds used for a fine patch or for the coarse alias of a refined level.

    Args:
        levels (list): World dictionaries of all levels.
        lev (int): Level index.
        patch_type (str): 'fine' or 'coarse'.

    Returns:
        tuple: (domain_lo, domain_hi)
    """
    assert patch_type in ('fine', 'coarse'), f"Unknown patch type: {patch_type}"
    world = levels[lev]
    domain_lo, domain_hi = world['domain_lo'], world['domain_hi']
    if patch_type == 'coarse':
        ratio = world['ref_ratio'] if lev > 0 else tuple(1 for _ in range(world['dim']))
        domain_lo, domain_hi = coarsen_domain(domain_lo, domain_hi, ratio)
    return domain_lo, domain_hi


def print_stats(levels):
    """
    Print the geometry of every mesh level.
    """
    for world in levels:
        cells = [h - l for l, h in zip(world['domain_lo'], world['domain_hi'])]
        names = [AXIS_NAMES[d] for d in world['axis_directions']]
        print(f"level {world['lev']}: {world['dim']}D {world['geometry']} mesh")
        for name, n, d, p in zip(names, cells, world['dx'], world['periodic']):
            print(f"  {name}: {n} cells with d{name}: {d} m {'(periodic)' if p else ''}")
