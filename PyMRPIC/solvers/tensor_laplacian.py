import numpy as np
import jax.numpy as jnp
from jax import jit
from functools import partial
# import external libraries

from PyMRPIC.cg import conjugated_gradients
from PyMRPIC.boundaryconditions import apply_zero_boundary_condition
# import internal libraries

# Nodal discretization of the anisotropic ("tensor") Laplacian
#
#     div( sigma grad phi ) = laplacian(phi) - (beta . grad)^2 phi,   sigma = I - beta beta^T
#
# used for the potential of a charge distribution moving at a constant velocity beta*c.
# Periodic axes store the nodes 0 .. N-1 (node N duplicates node 0), Dirichlet axes store
# the nodes 0 .. N with the boundary nodes held at zero.


def tensor_laplacian_coefficients(beta, axis_directions):
    """
    Coefficient matrix sigma = I - beta beta^T restricted to the active axes.

    Args:
        beta (array-like): Velocity of the source normalized by the speed of light, three components.
        axis_directions (tuple): Cartesian direction of every active axis.

    Returns:
        jnp.ndarray: The (dim, dim) coefficient matrix. It is the identity when beta is zero.
    """
    beta = jnp.asarray(beta, dtype=float)
    beta_solver = beta[jnp.asarray(axis_directions)]
    # 2D keeps (beta_x, beta_z), 1D keeps beta_z
    return jnp.eye(len(axis_directions)) - jnp.outer(beta_solver, beta_solver)


def neighbor(field, offset, axis, bc):
    """
    Values of the neighbors `offset` points away along an axis.

    Periodic axes wrap around, Dirichlet axes read zero beyond the stored nodes.
    """
    if bc == 'periodic':
        return jnp.roll(field, shift=-offset, axis=axis)
    n = field.shape[axis]
    pad = [(0, 0)] * field.ndim
    pad[axis] = (abs(offset), abs(offset))
    padded = jnp.pad(field, pad)
    index = [slice(None)] * field.ndim
    index[axis] = slice(abs(offset) + offset, abs(offset) + offset + n)
    return padded[tuple(index)]


def apply_tensor_laplacian(phi, sigma, dx, bcs):
    """
    Apply the nodal tensor Laplacian div(sigma grad phi) to a potential.

    Diagonal terms use the 3-point second difference, off-diagonal terms use the
    4-point centered mixed difference.

    Args:
        phi (jnp.ndarray): Potential on the stored nodes.
        sigma (jnp.ndarray): Coefficient matrix of shape (dim, dim).
        dx (tuple): Cell size per axis.
        bcs (tuple): 'periodic' or 'dirichlet' per axis.

    Returns:
        jnp.ndarray: The operator applied to phi.
    """
    dim = phi.ndim
    result = jnp.zeros_like(phi)

    for a in range(dim):
        second = (neighbor(phi, 1, a, bcs[a]) - 2 * phi + neighbor(phi, -1, a, bcs[a])) / (dx[a] * dx[a])
        result = result + sigma[a, a] * second
    # diagonal terms

    for a in range(dim):
        for b in range(a + 1, dim):
            plus = neighbor(phi, 1, a, bcs[a])
            minus = neighbor(phi, -1, a, bcs[a])
            mixed = (
                neighbor(plus, 1, b, bcs[b]) - neighbor(plus, -1, b, bcs[b])
                - neighbor(minus, 1, b, bcs[b]) + neighbor(minus, -1, b, bcs[b])
            ) / (4 * dx[a] * dx[b])
            result = result + 2 * sigma[a, b] * mixed
    # off-diagonal terms, sigma is symmetric

    return result


def to_unknowns(field, bcs):
    """
    Drop the duplicated end node of every periodic axis.
    """
    for axis, bc in enumerate(bcs):
        if bc == 'periodic':
            index = [slice(None)] * field.ndim
            index[axis] = slice(0, -1)
            field = field[tuple(index)]
    return field


def from_unknowns(field, bcs):
    """
    Append the duplicated end node of every periodic axis.
    """
    for axis, bc in enumerate(bcs):
        if bc == 'periodic':
            index = [slice(None)] * field.ndim
            index[axis] = slice(0, 1)
            field = jnp.concatenate([field, field[tuple(index)]], axis=axis)
    return field


def dirichlet_axes(bcs):
    return tuple(axis for axis, bc in enumerate(bcs) if bc == 'dirichlet')


def boundary_node_mask(shape, bcs):
    """
    Mask of the nodes held by a Dirichlet boundary condition.
    """
    mask = np.zeros(shape, dtype=bool)
    for axis in dirichlet_axes(bcs):
        index = [slice(None)] * len(shape)
        index[axis] = [0, shape[axis] - 1]
        mask[tuple(index)] = True
    return mask


@partial(jit, static_argnames=('bcs', 'maxiter'))
def solve_level(rho, sigma, dx, bcs, reltol, abstol, maxiter):
    """
    Solve div(sigma grad phi) = rho on one level with conjugate gradients.

    Args:
        rho (jnp.ndarray): Source on the nodes of the level (no halo).
        sigma (jnp.ndarray): Coefficient matrix.
        dx (jnp.ndarray): Cell size per axis.
        bcs (tuple): 'periodic' or 'dirichlet' per axis.
        reltol (float): Residual tolerance relative to the source norm.
        abstol (float): Absolute residual tolerance.
        maxiter (int): Maximum number of iterations.

    Returns:
        tuple: (phi, converged, iterations, residual_norm)
    """
    b = to_unknowns(rho, bcs)
    if all(bc == 'periodic' for bc in bcs):
        b = b - jnp.mean(b)
    # a fully periodic problem is singular, only the neutral part of the source is solvable

    fixed = boundary_node_mask(b.shape, bcs)
    b = jnp.where(fixed, 0.0, -b)
    # solve -L phi = -rho, which is positive definite on the free nodes

    axes = dirichlet_axes(bcs)

    def A(x):
        Ax = -apply_tensor_laplacian(apply_zero_boundary_condition(x, axes), sigma, dx, bcs)
        return jnp.where(fixed, x, Ax)
    # boundary nodes are identity rows

    x0 = jnp.zeros_like(b)
    x, converged, iterations, residual = conjugated_gradients(A, b, x0, reltol=reltol, abstol=abstol, maxiter=maxiter)

    return from_unknowns(x, bcs), converged, iterations, residual


def solve_tensor_laplacian(operator_config, boundary_config, sources, reltol=1e-11, abstol=0.0, maxiter=20000, verbose=False):
    """
    Default Poisson solve: conjugate gradients on every level.

    Each level is solved on its own domain with the domain boundary conditions.

    Args:
        operator_config (dict): 'sigma' (coefficient matrix) and 'dx' (cell size per axis of every level).
        boundary_config (dict): 'lo' and 'hi' tuples of 'periodic' or 'dirichlet' per axis.
        sources (list): Source array (no halo) of every level.
        reltol (float): Residual tolerance relative to the source norm.
        abstol (float): Absolute residual tolerance.
        maxiter (int): Maximum number of iterations per level.
        verbose (bool): Print the convergence history of every level.

    Returns:
        tuple: (fields, converged) with one solution array per level.
    """
    assert boundary_config['lo'] == boundary_config['hi'], "the same boundary type is expected on both sides"
    bcs = tuple(boundary_config['lo'])
    sigma = operator_config['sigma']

    fields = []
    converged = True
    for lev, rho in enumerate(sources):
        dx = jnp.asarray(operator_config['dx'][lev], dtype=float)
        phi, level_converged, iterations, residual = solve_level(rho, sigma, dx, bcs, reltol, abstol, maxiter)
        if verbose:
            print(f"level {lev}: {int(iterations)} iterations, residual norm {float(residual)}")
        fields.append(phi)
        converged = converged and bool(level_converged)

    return fields, converged
