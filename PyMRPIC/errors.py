import numpy as np
import jax.numpy as jnp
# import external libraries

from PyMRPIC.boundaryconditions import SIDES, is_pec
from PyMRPIC.pec import cell_count_to_boundary
from PyMRPIC.fields import check_layout
from PyMRPIC.solvers.tensor_laplacian import apply_tensor_laplacian, tensor_laplacian_coefficients, to_unknowns, boundary_node_mask
from PyMRPIC.space_charge import boundary_conditions_for_poisson
# import internal libraries

def compute_pe(phi, rho, beta, world, constants):
    """
    Compute the relative error of the boosted Poisson equation div(sigma grad phi) = -rho/eps on one level.

    Nodes held by a Dirichlet boundary condition are not included.

    Args:
        phi (MeshField): The potential of the level.
        rho (MeshField): The charge density of the level.
        beta (array-like): Velocity of the particles normalized by the speed of light.
        world (dict): World dictionary of the level.
        constants (dict): Dictionary containing 'eps'.

    Returns:
        float: The mean absolute residual relative to the mean of |rho/eps|.
    """
    check_layout(phi, rho)
    eps = constants['eps']
    bcs = boundary_conditions_for_poisson(world)
    sigma = tensor_laplacian_coefficients(beta, world['axis_directions'])

    potential = to_unknowns(phi.get_valid()[..., 0], bcs)
    source = to_unknowns(rho.get_valid()[..., 0], bcs) / eps
    if all(bc == 'periodic' for bc in bcs):
        source = source - jnp.mean(source)
    # only the neutral part of a periodic source is solvable

    x = apply_tensor_laplacian(potential, sigma, jnp.asarray(world['dx']), bcs)
    poisson_error = x + source
    interior = ~boundary_node_mask(potential.shape, bcs)
    magnitude = jnp.mean(jnp.abs(source[interior])) + 1e-16
    return jnp.mean(jnp.abs(poisson_error[interior])) / magnitude

def compute_pec_error(E, world, boundaries):
    """
    Largest tangential electric field found on the PEC faces of the domain.

    Args:
        E (tuple): The x, y and z components of the electric field (MeshField).
        world (dict): World dictionary of the level.
        boundaries (dict): The boundary table.

    Returns:
        float: max |E_tangential| over the valid points lying on a PEC face, 0 when there are none.
    """
    error = 0.0
    for icomp, field in enumerate(E):
        for axis in range(field.dim):
            if world['axis_directions'][axis] == icomp or field.nodal[axis] == 0:
                continue
            # only tangential components have points on the face
            for side in SIDES:
                if not is_pec(boundaries, axis, side):
                    continue
                index = np.arange(field.valid_shape()[axis]) + field.box_lo[axis]
                ig = cell_count_to_boundary(index, world['domain_lo'][axis], world['domain_hi'][axis], 1, side)
                on_face = np.nonzero(ig == 0)[0]
                values = jnp.take(field.get_valid(), on_face, axis=axis)
                error = jnp.maximum(error, jnp.max(jnp.abs(values)))
    return error
