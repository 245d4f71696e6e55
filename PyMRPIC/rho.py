import itertools
import numpy as np
import jax.numpy as jnp
# import external libraries

from PyMRPIC.utils import global_sum
# import internal libraries

def get_first_order_weights(position, prob_lo, dx, domain_lo):
    """
    Cloud-in-cell weights of the two nodes surrounding each particle along one axis.

    Args:
        position (jnp.ndarray): Particle coordinates along the axis.
        prob_lo (float): Physical coordinate of node domain_lo.
        dx (float): Cell size along the axis.
        domain_lo (int): Global index of the lower boundary node.

    Returns:
        tuple: (i0, (w0, w1)) the global index of the lower node and the weights of the two nodes.
    """
    s = (position - prob_lo) / dx
    i0 = jnp.floor(s)
    w1 = s - i0
    # fraction of the cell between the particle and the lower node
    return i0.astype(int) + domain_lo, (1.0 - w1, w1)

def fold_periodic_nodes(data, field, world):
    """
    Copy node domain_lo onto the duplicated end node domain_hi of every periodic axis.
    """
    for axis in range(world['dim']):
        if not world['periodic'][axis]:
            continue
        lo = [slice(None)] * data.ndim
        hi = [slice(None)] * data.ndim
        lo[axis] = world['domain_lo'][axis] - field.data_lo()[axis]
        hi[axis] = world['domain_hi'][axis] - field.data_lo()[axis]
        data = data.at[tuple(hi)].set(data[tuple(lo)])
    return data

def deposit_species(species, field, world):
    """
    Deposit the charge of one species onto a nodal field with first order (cloud-in-cell) shapes.

    Periodic axes wrap the nodes into [domain_lo, domain_hi), particles whose nodes
    fall outside the stored data of a non periodic axis are dropped.

    Args:
        species (particle_species): The particle species.
        field (MeshField): Nodal charge density field of the level.
        world (dict): World dictionary of the level.

    Returns:
        jnp.ndarray: The deposited charge density on the stored data.
    """
    dim = world['dim']
    shape = field.spatial_shape()
    data_lo = field.data_lo()
    deposit = jnp.zeros(field.get_data().shape)

    cell_volume = float(np.prod(world['dx']))
    dq = species.get_charge() / cell_volume
    # charge per unit volume of a macro-particle
    positions = species.get_position()

    nodes = []
    weights = []
    for axis, direction in enumerate(world['axis_directions']):
        i0, w = get_first_order_weights(positions[direction], world['prob_lo'][axis], world['dx'][axis], world['domain_lo'][axis])
        nodes.append(i0)
        weights.append(w)
    # inactive directions do not contribute to the shape

    for corner in itertools.product((0, 1), repeat=dim):
        index = []
        w = jnp.full(positions[0].shape, dq)
        inside = jnp.ones(positions[0].shape, dtype=bool)
        for axis, offset in enumerate(corner):
            node = nodes[axis] + offset
            if world['periodic'][axis]:
                n = world['domain_hi'][axis] - world['domain_lo'][axis]
                node = world['domain_lo'][axis] + jnp.mod(node - world['domain_lo'][axis], n)
            # wrap around the periodic axis
            local_node = node - data_lo[axis]
            inside = inside & (local_node >= 0) & (local_node < shape[axis])
            index.append(jnp.clip(local_node, 0, shape[axis] - 1))
            w = w * weights[axis][offset]
        w = jnp.where(inside, w, 0.0)
        deposit = deposit.at[tuple(index) + (0,)].add(w)
    # scatter to the 2**dim surrounding nodes

    return deposit

def deposit_charge(particles, rho, levels, local=False, reset=True):
    """
    Deposit the charge density of the particles on the nodal charge density of every level.

    Args:
        particles (list): List of particle species.
        rho (list): Nodal charge density MeshField of every level.
        levels (list): World dictionaries of all levels.
        local (bool): Keep the contribution of the particles of this process only. Otherwise
            the deposited densities are summed over all JAX processes.
        reset (bool): Zero the charge density before depositing.

    Returns:
        list: The updated charge density of every level.
    """
    updated = []
    for lev, world in enumerate(levels):
        field = rho[lev]
        assert all(n == 1 for n in field.nodal), "charge density must be node centered"

        deposit = jnp.zeros(field.get_data().shape)
        for species in particles:
            deposit = deposit + deposit_species(species, field, world)
        # deposit the charge of every species

        if not local:
            deposit = global_sum(deposit)
        # sum the contributions of every process

        data = deposit if reset else field.get_data() + deposit
        data = fold_periodic_nodes(data, field, world)
        updated.append(field.with_data(data))

    return updated
