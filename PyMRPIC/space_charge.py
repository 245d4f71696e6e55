import jax.numpy as jnp
# import external libraries

from PyMRPIC.exceptions import UnsupportedGeometryError, SolverDivergenceError
from PyMRPIC.fields import initialize_nodal_field, field_from_array, check_layout
from PyMRPIC.rho import deposit_charge
from PyMRPIC.particle import mean_particle_velocity
from PyMRPIC.solvers.tensor_laplacian import solve_tensor_laplacian, tensor_laplacian_coefficients
# import internal libraries

# Space-charge field of a particle beam moving at a uniform velocity beta*c.
#
# In the frame of the beam the field is electrostatic. Back in the lab frame the
# potential solves the boosted Poisson equation
#
#     div( (I - beta beta^T) grad phi ) = -rho / eps0
#
# and the electric field follows from E = -grad phi + beta (beta . grad phi).

REL_TOLERANCE = 1e-11
ABS_TOLERANCE = 0.0


def boundary_conditions_for_poisson(world):
    """
    Boundary condition of the potential along every active axis.

    Args:
        world (dict): World dictionary of a level.

    Returns:
        tuple: 'periodic' for periodic axes, 'dirichlet' (zero potential) otherwise.
    """
    return tuple('periodic' if p else 'dirichlet' for p in world['periodic'])


def compute_phi(rho, beta, levels, constants, solver=solve_tensor_laplacian, verbose=False):
    """
    Solve the boosted Poisson equation for the potential of every level.

    Args:
        rho (list): Nodal charge density MeshField of every level.
        beta (array-like): Mean velocity of the particles normalized by the speed of light.
        levels (list): World dictionaries of all levels.
        constants (dict): Dictionary containing 'eps'.
        solver (callable): solver(operator_config, boundary_config, sources, reltol=, abstol=)
            returning (fields, converged). Defaults to conjugate gradients on every level.
        verbose (bool): Print the solver configuration and the potential extrema.

    Returns:
        list: The potential of every level as a nodal MeshField without halo.

    Raises:
        SolverDivergenceError: If the solver does not reach the requested tolerance.
    """
    eps = constants['eps']
    world = levels[0]
    bcs = boundary_conditions_for_poisson(world)
    sigma = tensor_laplacian_coefficients(beta, world['axis_directions'])
    # the coefficients only depend on the velocity, they are shared by all the levels

    operator_config = {
        'beta': jnp.asarray(beta, dtype=float)[jnp.asarray(world['axis_directions'])],
        'sigma': sigma,
        'dx': [w['dx'] for w in levels],
    }
    boundary_config = {'lo': bcs, 'hi': bcs}

    sources = []
    for field in rho:
        assert all(n == 1 for n in field.nodal), "charge density must be node centered"
        sources.append(field.get_valid()[..., 0])
    # the solve only sees the valid nodes

    if verbose:
        print(f"Solving the space-charge potential on {len(levels)} level(s)")
        print(f"beta: {beta}, boundary conditions: {bcs}")

    fields, converged = solver(operator_config, boundary_config, sources, reltol=REL_TOLERANCE, abstol=ABS_TOLERANCE)
    if not converged:
        raise SolverDivergenceError(
            f"The space-charge potential solve on {len(levels)} level(s) did not reach the relative tolerance {REL_TOLERANCE}"
        )

    phi = []
    for lev, (array, world) in enumerate(zip(fields, levels)):
        array = -jnp.asarray(array) / eps
        # the solver returns the solution of div(sigma grad phi) = rho
        nodal = tuple(1 for _ in range(world['dim']))
        phi.append(field_from_array(array, world, nodal, ngrow=0, name='phi'))
        check_layout(phi[lev], rho[lev])
        if verbose:
            print(f"level {lev}: phi in [{float(jnp.min(array))}, {float(jnp.max(array))}] V")

    return phi


def pad_potential(phi, periodic):
    """
    Extend a nodal potential by one node beyond each boundary.

    Periodic axes wrap around, skipping the duplicated end node. Other axes use the odd
    reflection about the zero boundary value.

    Args:
        phi (jnp.ndarray): Potential on the nodes domain_lo .. domain_hi.
        periodic (tuple): Periodicity of every axis.

    Returns:
        jnp.ndarray: The padded potential.
    """
    for axis, p in enumerate(periodic):
        n = phi.shape[axis]
        first = jnp.take(phi, jnp.array([1]), axis=axis)
        last = jnp.take(phi, jnp.array([n - 2]), axis=axis)
        if p:
            left, right = last, first
        else:
            left, right = -first, -last
        phi = jnp.concatenate([left, phi, right], axis=axis)
    return phi


def shifted(padded, shape, axis=None, shift=0):
    """
    Window of a padded potential matching a component's valid region, shifted along one axis.
    """
    index = []
    for a, n in enumerate(shape):
        s = shift if a == axis else 0
        index.append(slice(1 + s, 1 + s + n))
    return padded[tuple(index)]


def compute_E(E, phi, beta, levels):
    """
    Add the space-charge electric field of a potential to the electric field of every level.

        E_c += sum_a (beta_c beta_a - delta_ca) d(phi)/dx_a

    Derivatives along the direction of the component are staggered one-sided differences,
    derivatives along the other axes are centered differences. Only the components along
    active axes are updated.

    Args:
        E (list): Electric field components (MeshField) of every level.
        phi (list): Potential of every level.
        beta (array-like): Mean velocity of the particles normalized by the speed of light.
        levels (list): World dictionaries of all levels.

    Returns:
        list: The updated electric field components of every level.
    """
    beta = jnp.asarray(beta, dtype=float)
    updated = []
    for lev, world in enumerate(levels):
        potential = phi[lev].get_valid()[..., 0]
        padded = pad_potential(potential, world['periodic'])
        directions = world['axis_directions']
        dx = world['dx']

        components = list(E[lev])
        for axis, icomp in enumerate(directions):
            field = components[icomp]
            assert field.ncomp == 1, "the space-charge field is added to a single valued field"
            assert field.box_lo == phi[lev].box_lo, f"{field.name} and phi cover different boxes"
            shape = field.valid_shape()

            increment = jnp.zeros(shape)
            for a, direction in enumerate(directions):
                if a == axis:
                    gradient = (shifted(padded, shape, a, 1) - shifted(padded, shape)) / dx[a]
                else:
                    gradient = (shifted(padded, shape, a, 1) - shifted(padded, shape, a, -1)) / (2 * dx[a])
                coefficient = beta[icomp] * beta[direction] - (1.0 if a == axis else 0.0)
                increment = increment + coefficient * gradient
            # E_c = -d(phi)/dx_c + beta_c (beta . grad phi)

            data = field.get_data().at[field.valid_slices()].add(increment[..., None])
            components[icomp] = field.with_data(data)

        updated.append(tuple(components))

    return updated


def check_geometry(levels):
    for world in levels:
        if world['geometry'] == 'rz':
            raise UnsupportedGeometryError("The space-charge field initialization is not implemented in RZ geometry")


def initialize_space_charge_field(species, E, levels, constants, solver=solve_tensor_laplacian, nox=1, verbose=False):
    """
    Add the self field of a particle species moving at its mean velocity to the electric field.

    Args:
        species (particle_species): The particle species.
        E (list): Electric field components (MeshField) of every level.
        levels (list): World dictionaries of all levels.
        constants (dict): Dictionary containing 'eps' and 'C'.
        solver (callable): The Poisson solve, see compute_phi.
        nox (int): Order of the particle shape, sets the halo of the charge density.
        verbose (bool): Print the progress of the initialization.

    Returns:
        list: The updated electric field components of every level.

    Raises:
        UnsupportedGeometryError: If any level uses the RZ geometry.
        SolverDivergenceError: If the potential solve does not converge.
    """
    check_geometry(levels)

    rho = [initialize_nodal_field(world, nox, name='rho') for world in levels]
    rho = deposit_charge([species], rho, levels, local=False, reset=True)
    # global charge density of the species

    beta = mean_particle_velocity([species], local=False) / constants['C']
    if verbose:
        print(f"Initializing the space-charge field of {species.get_name()}, beta = {beta}")

    phi = compute_phi(rho, beta, levels, constants, solver=solver, verbose=verbose)
    return compute_E(E, phi, beta, levels)


def initialize_self_fields(particles, E, levels, constants, solver=solve_tensor_laplacian, nox=1, verbose=False):
    """
    Add the space-charge field of every species flagged with initialize_self_fields.

    Args:
        particles (list): List of particle species.
        E (list): Electric field components (MeshField) of every level.
        levels (list): World dictionaries of all levels.
        constants (dict): Dictionary of constants.
        solver (callable): The Poisson solve, see compute_phi.
        nox (int): Order of the particle shape.
        verbose (bool): Print the progress of the initialization.

    Returns:
        list: The updated electric field components of every level.
    """
    for species in particles:
        if species.initialize_self_fields:
            E = initialize_space_charge_field(species, E, levels, constants, solver=solver, nox=nox, verbose=verbose)
    return E
