import jax
import jax.numpy as jnp

from PyMRPIC.geometry import build_level_worlds
from PyMRPIC.fields import initialize_fields, initialize_nodal_field, field_from_array
from PyMRPIC.space_charge import compute_phi, compute_E
from PyMRPIC.utils import convergence_test, mae

jax.config.update("jax_enable_x64", True)

beta = jnp.array([0.3, 0.0, 0.6])
constants = {'eps': 1.0, 'C': 1.0}

def build_levels(nx):
    simulation_parameters = {
        'dim': 2, 'geometry': 'cartesian', 'n_cell': nx, 'prob_lo': 0.0, 'prob_hi': 1.0,
        'max_level': 0, 'ref_ratio': 2, 'ngrow': 1, 'ng_fieldgather': 1,
    }
    return build_level_worlds(simulation_parameters, periodic=(True, True))

def potential_comparison(nx):
    """
    Error of the boosted potential of a periodic charge density against the analytical solution.

    rho = sin(2 pi x) sin(2 pi z) gives phi = rho / (eps (2 pi)^2 (sigma_xx + sigma_zz)) when the
    velocity has no z component, so that sigma has no off diagonal term.
    """
    levels = build_levels(nx)
    x = jnp.linspace(0.0, 1.0, nx + 1)
    X, Z = jnp.meshgrid(x, x, indexing='ij')
    rho = initialize_nodal_field(levels[0], 0, name='rho')
    rho = rho.with_data(jnp.sin(2 * jnp.pi * X)[..., None] * jnp.sin(2 * jnp.pi * Z)[..., None])

    no_cross = jnp.array([beta[0], 0.0, 0.0])
    phi = compute_phi([rho], no_cross, levels, constants)
    expected = rho.get_data()[..., 0] / ((2 * jnp.pi)**2 * (2 - no_cross[0]**2))

    return mae(phi[0].get_valid()[..., 0], expected), 1.0 / nx

def field_comparison(nx):
    """
    Error of the recovered Ez of the potential phi = sin(2 pi x) sin(2 pi z).
    """
    levels = build_levels(nx)
    x = jnp.linspace(0.0, 1.0, nx + 1)
    X, Z = jnp.meshgrid(x, x, indexing='ij')
    phi = [field_from_array(jnp.sin(2 * jnp.pi * X) * jnp.sin(2 * jnp.pi * Z), levels[0], (1, 1), name='phi')]
    E, B = initialize_fields(levels)
    Ez = compute_E(E, phi, beta, levels)[0][2].get_valid()[..., 0]

    z_cell = (jnp.arange(nx) + 0.5) / nx
    Xc, Zc = jnp.meshgrid(x, z_cell, indexing='ij')
    dphi_dx = 2 * jnp.pi * jnp.cos(2 * jnp.pi * Xc) * jnp.sin(2 * jnp.pi * Zc)
    dphi_dz = 2 * jnp.pi * jnp.sin(2 * jnp.pi * Xc) * jnp.cos(2 * jnp.pi * Zc)
    expected = beta[2] * beta[0] * dphi_dx + (beta[2] * beta[2] - 1) * dphi_dz

    return mae(Ez, expected), 1.0 / nx

if __name__ == "__main__":
    print(f"Potential order of convergence: {convergence_test(potential_comparison)}")
    print(f"Field recovery order of convergence: {convergence_test(field_comparison)}")
