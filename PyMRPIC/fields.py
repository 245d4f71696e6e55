import numpy as np
import jax.numpy as jnp
from jax.tree_util import register_pytree_node_class
# import external libraries


@register_pytree_node_class
class MeshField:
    """
    Class representing one field component stored on a structured mesh patch.

    The array holds the valid points of the patch surrounded by a halo of ghost points.
    The trailing axis of the array holds the field-value slots (split sub-fields),
    so a field with a single value per point has a trailing axis of length 1.

    Attributes:
        data (jnp.ndarray): Field values, shape (*spatial, ncomp).
        nodal (tuple): Staggering flag per axis, 1 for node aligned and 0 for cell centered.
        ngrow (tuple): Halo width per axis.
        box_lo (tuple): Global index of the first valid point per axis.
        name (str): Name of the field.

    Methods:
        get_data(): Returns the array of field values.
        get_valid(): Returns the values of the valid region.
        valid_shape(): Returns the number of valid points per axis.
        valid_slices(): Returns the slices selecting the valid region of the array.
        data_lo(): Returns the global index of the first stored point per axis.
        global_indices(axis): Returns the global index of every stored point along an axis.
        with_data(data): Returns a copy of the field holding new values.
        tree_flatten(): Flattens the object for JAX transformations.
        tree_unflatten(aux_data, children): Reconstructs the object from flattened data.
    """

    def __init__(self, data, nodal, ngrow, box_lo, name='field'):
        self.data = data
        self.nodal = tuple(int(n) for n in nodal)
        self.ngrow = tuple(int(g) for g in ngrow)
        self.box_lo = tuple(int(b) for b in box_lo)
        self.name = name

    @property
    def dim(self):
        return len(self.nodal)

    @property
    def ncomp(self):
        return self.data.shape[-1]

    def get_data(self):
        return self.data

    def get_name(self):
        return self.name

    def spatial_shape(self):
        return tuple(self.data.shape[:self.dim])

    def valid_shape(self):
        return tuple(n - 2 * g for n, g in zip(self.spatial_shape(), self.ngrow))

    def valid_slices(self):
        return tuple(slice(g, g + n) for g, n in zip(self.ngrow, self.valid_shape())) + (slice(None),)

    def get_valid(self):
        return self.data[self.valid_slices()]

    def data_lo(self):
        return tuple(b - g for b, g in zip(self.box_lo, self.ngrow))

    def global_indices(self, axis):
        return np.arange(self.spatial_shape()[axis]) + self.data_lo()[axis]

    def with_data(self, data):
        return MeshField(data, self.nodal, self.ngrow, self.box_lo, self.name)

    def tree_flatten(self):
        children = (self.data,)
        aux_data = (self.nodal, self.ngrow, self.box_lo, self.name)
        return children, aux_data

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        data, = children
        nodal, ngrow, box_lo, name = aux_data
        return cls(data=data, nodal=nodal, ngrow=ngrow, box_lo=box_lo, name=name)


def yee_staggering(world, field_type):
    """
    Staggering of the three Cartesian components of E or B on a Yee mesh.

    E_c is cell centered along its own direction and nodal along the other axes,
    B_c is nodal along its own direction and cell centered along the other axes.

    Args:
        world (dict): World dictionary of the level.
        field_type (str): 'E' or 'B'.

    Returns:
        tuple: One per-axis nodal flag tuple for each Cartesian component.
    """
    assert field_type in ('E', 'B'), f"Unknown field type: {field_type}"
    staggering = []
    for icomp in range(3):
        if field_type == 'E':
            nodal = tuple(0 if d == icomp else 1 for d in world['axis_directions'])
        else:
            nodal = tuple(1 if d == icomp else 0 for d in world['axis_directions'])
        staggering.append(nodal)
    return tuple(staggering)


def allocate_field(world, nodal, ngrow, ncomp=1, name='field', value=0.0):
    """
    Allocate a field over the whole domain of a level.

    Args:
        world (dict): World dictionary of the level.
        nodal (tuple): Staggering flag per axis.
        ngrow (tuple): Halo width per axis.
        ncomp (int): Number of field-value slots per point.
        name (str): Name of the field.
        value (float): Initial value.

    Returns:
        MeshField: The allocated field.
    """
    ncells = [h - l for l, h in zip(world['domain_lo'], world['domain_hi'])]
    shape = tuple(n + s + 2 * g for n, s, g in zip(ncells, nodal, ngrow)) + (ncomp,)
    data = jnp.full(shape, value, dtype=float)
    return MeshField(data, nodal, ngrow, world['domain_lo'], name)


def initialize_fields(levels, ncomp=1):
    """
    Initializes the electric and magnetic field components of every level as 0.

    Args:
        levels (list): World dictionaries of all levels.
        ncomp (int): Number of field-value slots per point.

    Returns:
        tuple: (E, B) where E[lev] and B[lev] are tuples of the x, y and z components.
    """
    E = []
    B = []
    for world in levels:
        E_nodal = yee_staggering(world, 'E')
        B_nodal = yee_staggering(world, 'B')
        E.append(tuple(allocate_field(world, E_nodal[c], world['ngrow'], ncomp, name=f"E{'xyz'[c]}") for c in range(3)))
        B.append(tuple(allocate_field(world, B_nodal[c], world['ngrow'], ncomp, name=f"B{'xyz'[c]}") for c in range(3)))
    return E, B


def initialize_nodal_field(world, ngrow, name='phi'):
    """
    Allocate a single component node centered scalar field (charge density or potential).

    Args:
        world (dict): World dictionary of the level.
        ngrow (int or tuple): Halo width.
        name (str): Name of the field.

    Returns:
        MeshField: The zeroed field.
    """
    if np.ndim(ngrow) == 0:
        ngrow = tuple(int(ngrow) for _ in range(world['dim']))
    nodal = tuple(1 for _ in range(world['dim']))
    return allocate_field(world, nodal, ngrow, 1, name=name)


def field_from_array(array, world, nodal, ngrow=0, name='field'):
    """
    Wrap an array of valid values (no halo, no slot axis) into a MeshField with a zero halo of the given width.
    """
    if np.ndim(ngrow) == 0:
        ngrow = tuple(int(ngrow) for _ in range(world['dim']))
    array = jnp.asarray(array, dtype=float)
    pad = tuple((g, g) for g in ngrow)
    data = jnp.pad(array, pad)[..., None]
    return MeshField(data, nodal, ngrow, world['domain_lo'], name)


def check_layout(field, other):
    """
    Assert that two fields share the same layout.
    """
    assert field.nodal == other.nodal, f"{field.name} and {other.name} have different staggering"
    assert field.box_lo == other.box_lo, f"{field.name} and {other.name} cover different boxes"
    assert field.valid_shape() == other.valid_shape(), f"{field.name} and {other.name} have different valid shapes"
