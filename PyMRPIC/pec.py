import numpy as np
import jax.numpy as jnp
# import external libraries

from PyMRPIC.boundaryconditions import SIDES, check_boundaries, is_pec, is_any_boundary_pec
from PyMRPIC.geometry import domain_for_patch, refine_domain
# import internal libraries

# Perfect electric conductor (PEC) boundary conditions on staggered E and B components.
#
# Tangential E and normal B vanish on a PEC surface. Points that sit exactly on the
# surface are zeroed, and ghost points beyond the surface are filled from their mirror
# point inside the domain: the vanishing components are mirrored with a flipped sign,
# the others are mirrored as is. At edges and corners the mirror index and the sign
# combine over every PEC face.


def cell_count_to_boundary(index, domain_lo, domain_hi, nodal, side):
    """
    Number of points that an index lies past a domain boundary.

    A value of 0 means the point sits on the boundary node (nodal) or is the first valid cell
    (cell centered), positive values are ghost points, negative values are inside the domain.

    Args:
        index (ndarray): Global indices along the axis.
        domain_lo (int): Lower boundary node of the axis.
        domain_hi (int): Upper boundary node of the axis.
        nodal (int): 1 if the component is node aligned along the axis, 0 if cell centered.
        side (str): 'lo' or 'hi'.

    Returns:
        ndarray: The number of points past the boundary.
    """
    if side == 'lo':
        return domain_lo - index
    return index - (domain_hi - 1 + nodal)


def mirror_index(ig, domain_lo, domain_hi, nodal, side):
    """
    Index of the point mirrored across a domain boundary for a ghost point ig points past it.
    """
    if side == 'lo':
        return domain_lo + ig - (1 - nodal)
    return domain_hi - ig


def update_region_mask(field, grow):
    """
    Mask of the stored points that belong to the valid region grown by `grow` points per axis.
    """
    assert all(g <= n for g, n in zip(grow, field.ngrow)), f"update region of {field.name} exceeds its halo"
    masks = []
    for axis in range(field.dim):
        index = field.global_indices(axis)
        lo = field.box_lo[axis] - grow[axis]
        hi = field.box_lo[axis] + field.valid_shape()[axis] - 1 + grow[axis]
        masks.append((index >= lo) & (index <= hi))
    return np.logical_and.reduce(np.meshgrid(*masks, indexing='ij'))


def pec_index_map(field, icomp, axis_directions, domain_lo, domain_hi, boundaries, grow, field_type):
    """
    Build the PEC update of one field component.

    Args:
        field (MeshField): The field component.
        icomp (int): Cartesian direction of the component (0=x, 1=y, 2=z).
        axis_directions (tuple): Cartesian direction of every active axis.
        domain_lo (tuple): Lower boundary node per axis.
        domain_hi (tuple): Upper boundary node per axis.
        boundaries (dict): The boundary table.
        grow (tuple): Number of halo points per axis included in the update region.
        field_type (str): 'E' or 'B'.

    Returns:
        tuple: (on_pec, guard, mirror, sign) where on_pec marks points set to zero, guard marks
            ghost points filled from the flat array index `mirror` multiplied by `sign`.
    """
    shape = field.spatial_shape()
    index = np.meshgrid(*[field.global_indices(axis) for axis in range(field.dim)], indexing='ij')
    mirror = [i.copy() for i in index]
    on_pec = np.zeros(shape, dtype=bool)
    guard = np.zeros(shape, dtype=bool)
    sign = np.ones(shape)

    for axis in range(field.dim):
        normal = axis_directions[axis] == icomp
        odd = normal if field_type == 'B' else not normal
        # tangential E and normal B vanish on the conductor
        nodal = field.nodal[axis]

        for side in SIDES:
            if not is_pec(boundaries, axis, side):
                continue

            ig = cell_count_to_boundary(index[axis], domain_lo[axis], domain_hi[axis], nodal, side)
            if odd and nodal == 1:
                on_pec |= (ig == 0)
            # point on the conductor surface

            beyond = ig > 0
            guard |= beyond
            mirror[axis] = np.where(beyond, mirror_index(ig, domain_lo[axis], domain_hi[axis], nodal, side), mirror[axis])
            if odd:
                sign = np.where(beyond, -sign, sign)
            # ghost point filled from its mirror across the boundary

    region = update_region_mask(field, grow)
    on_pec &= region
    guard &= region & ~on_pec

    data_lo = field.data_lo()
    mirror = [m - lo for m, lo in zip(mirror, data_lo)]
    for axis in range(field.dim):
        inside = (mirror[axis] >= 0) & (mirror[axis] < shape[axis])
        assert np.all(inside[guard]), f"mirror of a {field.name} ghost point lies outside the stored data"
        mirror[axis] = np.where(guard, mirror[axis], index[axis] - data_lo[axis])

    mirror = np.ravel_multi_index(tuple(mirror), shape)
    return on_pec, guard, mirror, sign


def apply_pec_to_component(field, icomp, world, domain_lo, domain_hi, boundaries, grow, field_type):
    """
    Apply the PEC rule to every field-value slot of one component.

    Args:
        field (MeshField): The field component.
        icomp (int): Cartesian direction of the component.
        world (dict): World dictionary of the level.
        domain_lo (tuple): Lower boundary node per axis.
        domain_hi (tuple): Upper boundary node per axis.
        boundaries (dict): The boundary table.
        grow (tuple): Number of halo points per axis included in the update region.
        field_type (str): 'E' or 'B'.

    Returns:
        MeshField: The corrected component.
    """
    on_pec, guard, mirror, sign = pec_index_map(
        field, icomp, world['axis_directions'], domain_lo, domain_hi, boundaries, grow, field_type
    )

    data = field.get_data()
    ncomp = field.ncomp
    mirrored = data.reshape(-1, ncomp)[mirror.ravel()].reshape(data.shape)
    mirrored = mirrored * jnp.asarray(sign, dtype=data.dtype)[..., None]
    # values read from the mirror points of the input field

    data = jnp.where(guard[..., None], mirrored, data)
    data = jnp.where(on_pec[..., None], 0.0, data)
    # fill the ghost points and zero the points on the conductor

    return field.with_data(data)


def apply_pec_to_Efield(E, levels, lev, boundaries, patch_type='fine', split_pml_field=False):
    """
    Apply PEC boundary conditions to the electric field of one level.

    Tangential E on the conductor surface is set to zero. Ghost points of the tangential
    components take the negated value of their mirror point, ghost points of the normal
    component take the value of their mirror point.

    Args:
        E (tuple): The x, y and z components of the electric field (MeshField).
        levels (list): World dictionaries of all levels.
        lev (int): Level of the field.
        boundaries (dict): The boundary table.
        patch_type (str): 'fine', or 'coarse' for the coarse alias of a refined level.
        split_pml_field (bool): Only update the valid region (split absorbing-layer fields)
            instead of the valid region grown by the particle-gather halo.

    Returns:
        tuple: The corrected electric field components.
    """
    world = levels[lev]
    check_boundaries(boundaries, world['dim'])
    domain_lo, domain_hi = domain_for_patch(levels, lev, patch_type)

    if split_pml_field:
        grow = tuple(0 for _ in range(world['dim']))
    else:
        grow = world['ng_fieldgather']
    # the field used by the gather is also corrected in the gather halo

    return tuple(
        apply_pec_to_component(E[icomp], icomp, world, domain_lo, domain_hi, boundaries, grow, 'E')
        for icomp in range(3)
    )


def apply_pec_to_Bfield(B, levels, lev, boundaries, patch_type='fine'):
    """
    Apply PEC boundary conditions to the magnetic field of one level.

    Normal B on the conductor surface is set to zero. Ghost points of the normal component
    take the negated value of their mirror point, ghost points of the tangential components
    take the value of their mirror point.

    Args:
        B (tuple): The x, y and z components of the magnetic field (MeshField).
        levels (list): World dictionaries of all levels.
        lev (int): Level of the field.
        boundaries (dict): The boundary table.
        patch_type (str): 'fine', or 'coarse' for the coarse alias of a refined level.

    Returns:
        tuple: The corrected magnetic field components.
    """
    world = levels[lev]
    check_boundaries(boundaries, world['dim'])
    domain_lo, domain_hi = domain_for_patch(levels, lev, patch_type)
    grow = world['ng_fieldgather']

    return tuple(
        apply_pec_to_component(B[icomp], icomp, world, domain_lo, domain_hi, boundaries, grow, 'B')
        for icomp in range(3)
    )


def apply_pec(E, B, levels, boundaries, patch_type='fine'):
    """
    Apply PEC boundary conditions to the electric and magnetic fields of every level.

    Args:
        E (list): Electric field components of every level.
        B (list): Magnetic field components of every level.
        levels (list): World dictionaries of all levels.
        boundaries (dict): The boundary table.
        patch_type (str): 'fine' or 'coarse'.

    Returns:
        tuple: (E, B) with the boundary conditions applied.
    """
    if not is_any_boundary_pec(boundaries):
        return E, B
    E = [apply_pec_to_Efield(E[lev], levels, lev, boundaries, patch_type) for lev in range(len(levels))]
    B = [apply_pec_to_Bfield(B[lev], levels, lev, boundaries, patch_type) for lev in range(len(levels))]
    return E, B


def grab_pec_keys(config):
    """
    Extracts keys from a configuration dictionary that start with 'pec'.
    Args:
        config (dict): A dictionary containing configuration keys and values.
    Returns:
        list: A list of keys from the configuration dictionary that start with 'pec'.
    """
    pec_keys = []
    for key in config.keys():
        if key[:3] == 'pec':
            pec_keys.append(key)
    return pec_keys


def read_pec_boundaries_from_toml(config, world):
    """
    Reads embedded PEC objects from a TOML configuration and returns a list of PEC objects.

    Every table named 'pec*' holds a name and the physical extent of the conductor box,
    'start' and 'stop' with one coordinate per active axis.

    Args:
        config (dict): A dictionary containing configuration keys and values.
        world (dict): The world dictionary of level 0.
    Returns:
        list: A list of PEC objects created from the TOML file.
    """
    dx = world['dx']
    prob_lo = world['prob_lo']

    pecs = []
    for toml_key in grab_pec_keys(config):
        name = config[toml_key]['name']
        start = config[toml_key]['start']
        stop = config[toml_key]['stop']
        assert len(start) == len(stop) == world['dim'], f"{name}: expected {world['dim']} coordinates"

        lo = tuple(int(round((s - p) / d)) for s, p, d in zip(start, prob_lo, dx))
        hi = tuple(int(round((s - p) / d)) for s, p, d in zip(stop, prob_lo, dx))
        # convert the PEC box coordinates to node indices

        pecs.append(PEC(name, lo, hi))

    return pecs


class PEC:
    def __init__(self, name, lo, hi):
        """
        Initialize a new embedded PEC (Perfect Electric Conductor) box.

        Args:
            name (str): The name of the PEC object.
            lo (tuple): Lower corner of the box as a level 0 node index per axis.
            hi (tuple): Upper corner of the box as a level 0 node index per axis.
        """
        self.name = name
        self.lo = tuple(lo)
        self.hi = tuple(hi)

    def level_bounds(self, levels, lev):
        """
        Corners of the box in the node indices of level lev.
        """
        lo, hi = self.lo, self.hi
        for world in levels[1:lev + 1]:
            lo, hi = refine_domain(lo, hi, world['ref_ratio'])
        return lo, hi

    def surface_mask(self, field, icomp, axis_directions, lo, hi):
        """
        Mask of the points of a component that lie on the faces of the box and are tangential to them.

        A cell centered point belongs to the box when its whole cell does, so along those axes
        the last cell inside starts at hi - 1.
        """
        index = np.meshgrid(*[field.global_indices(axis) for axis in range(field.dim)], indexing='ij')
        inside = np.logical_and.reduce([
            (i >= l) & ((i <= h) if nodal else (i < h)) for i, l, h, nodal in zip(index, lo, hi, field.nodal)
        ])
        mask = np.zeros(field.spatial_shape(), dtype=bool)
        for axis in range(field.dim):
            if axis_directions[axis] == icomp or field.nodal[axis] == 0:
                continue
            on_face = (index[axis] == lo[axis]) | (index[axis] == hi[axis])
            mask |= on_face & inside
        return mask

    def apply_pec(self, E, levels, lev):
        """
        Zero the electric field components tangential to the faces of the box on those faces.

        Args:
            E (tuple): The x, y and z components of the electric field (MeshField) of level lev.
            levels (list): World dictionaries of all levels.
            lev (int): Level of E.

        Returns:
            tuple: The electric field components with the conductor applied.
        """
        lo, hi = self.level_bounds(levels, lev)
        directions = levels[lev]['axis_directions']
        corrected = []
        for icomp, field in enumerate(E):
            mask = self.surface_mask(field, icomp, directions, lo, hi)
            corrected.append(field.with_data(jnp.where(mask[..., None], 0.0, field.get_data())))
        return tuple(corrected)

    def __repr__(self):
        return f"PEC({self.name}, lo={self.lo}, hi={self.hi})"


def apply_embedded_pecs(E, levels, pecs):
    """
    Apply every embedded conductor box to the electric field of every level.
    """
    E = list(E)
    for pec in pecs:
        E = [pec.apply_pec(E[lev], levels, lev) for lev in range(len(levels))]
    return E
