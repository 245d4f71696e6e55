import jax
import jax.numpy as jnp
from jax.tree_util import register_pytree_node_class

from PyMRPIC.utils import T_to_vth, vth_to_T, global_sum

def grab_particle_keys(config):
    """
    Extracts and returns a list of keys from the given configuration dictionary
    that start with the prefix 'particle'.

    Args:
        config (dict): A dictionary containing configuration keys and values.

    Returns:
        list: A list of keys from the configuration dictionary that start with 'particle'.
    """
    particle_keys = []
    for key in config.keys():
        if key[:8] == 'particle':
            particle_keys.append(key)
    return particle_keys

def read_value(param, key, config, default_value):
    """
    Reads a value from a nested dictionary structure and returns it if it exists;
    otherwise, returns a default value.

    Args:
        param (str): The parameter name to look for in the nested dictionary.
        key (str): The key in the outer dictionary where the nested dictionary is located.
        config (dict): The configuration dictionary containing nested dictionaries.
        default_value (Any): The value to return if the parameter is not found.

    Returns:
        Any: The value associated with `param` in `config[key]` if it exists,
             otherwise `default_value`.
    """
    if param in config[key]:
        print(f'Reading user defined {param}')
        return config[key][param]
    else:
        return default_value

def load_particles_from_toml(config, levels, constants):
    """
    Load particle data from a TOML file and initialize particle species.

    Every table named 'particle*' describes one species: name, charge, mass, number of
    macro-particles, temperature (or thermal velocity), drift velocity ('drift', three
    components in m/s), extent of the loaded region and the 'initialize_self_fields' flag.

    Args:
        config (dict): Dictionary containing configuration keys and values.
        levels (list): World dictionaries of all levels, level 0 sets the default extent.
        constants (dict): Dictionary containing constants such as 'kb'.
    Returns:
        list: A list of particle_species objects initialized with the data from the TOML file.
    """
    world = levels[0]
    kb = constants['kb']
    # get the constants

    prob_lo = [0.0, 0.0, 0.0]
    prob_hi = [0.0, 0.0, 0.0]
    for axis, direction in enumerate(world['axis_directions']):
        prob_lo[direction] = world['prob_lo'][axis]
        prob_hi[direction] = world['prob_lo'][axis] + (world['domain_hi'][axis] - world['domain_lo'][axis]) * world['dx'][axis]
    # default extent of the particles: the whole domain along the active axes

    i = 0
    # initialize the random number generator key
    # it is incremented by 6 for each particle species to ensure different random numbers for each species
    particles = []
    particle_keys = grab_particle_keys(config)
    # get the particle keys from the config dictionary

    for toml_key in particle_keys:
        keys = [jax.random.key(i + n) for n in range(6)]
        i += 6
        # build the particle random number generator keys
        particle_name = config[toml_key]['name']
        charge = config[toml_key]['charge']
        mass = config[toml_key]['mass']
        N_particles = config[toml_key]['N_particles']
        weight = read_value('weight', toml_key, config, 1.0)

        if 'temperature' in config[toml_key]:
            T = config[toml_key]['temperature']
            vth = T_to_vth(T, mass, kb)
        elif 'vth' in config[toml_key]:
            vth = config[toml_key]['vth']
            T = vth_to_T(vth, mass, kb)
        else:
            T = 0.0
            vth = 0.0
        # set the temperature of the particle species, cold by default

        drift = read_value('drift', toml_key, config, [0.0, 0.0, 0.0])
        xmin = read_value('xmin', toml_key, config, prob_lo[0])
        xmax = read_value('xmax', toml_key, config, prob_hi[0])
        ymin = read_value('ymin', toml_key, config, prob_lo[1])
        ymax = read_value('ymax', toml_key, config, prob_hi[1])
        zmin = read_value('zmin', toml_key, config, prob_lo[2])
        zmax = read_value('zmax', toml_key, config, prob_hi[2])
        # set the bounds for the particle species

        x = jax.random.uniform(keys[0], shape=(N_particles,), minval=xmin, maxval=xmax)
        y = jax.random.uniform(keys[1], shape=(N_particles,), minval=ymin, maxval=ymax)
        z = jax.random.uniform(keys[2], shape=(N_particles,), minval=zmin, maxval=zmax)
        vx = drift[0] + vth * jax.random.normal(keys[3], shape=(N_particles,))
        vy = drift[1] + vth * jax.random.normal(keys[4], shape=(N_particles,))
        vz = drift[2] + vth * jax.random.normal(keys[5], shape=(N_particles,))
        # drifting maxwellian

        initialize_self_fields = read_value('initialize_self_fields', toml_key, config, False)

        particle = particle_species(
            name=particle_name,
            N_particles=N_particles,
            charge=charge,
            mass=mass,
            T=T,
            x1=x,
            x2=y,
            x3=z,
            v1=vx,
            v2=vy,
            v3=vz,
            weight=weight,
            initialize_self_fields=initialize_self_fields
        )
        particles.append(particle)

        print(f"\nInitializing particle species: {particle_name}")
        print(f"Number of particles: {N_particles}")
        print(f"Charge: {charge}")
        print(f"Mass: {mass}")
        print(f"Temperature: {T}")
        print(f"Drift Velocity: {drift}")
        print(f"Particle Weight: {weight}")
        print(f"Initialize Self Fields: {initialize_self_fields}")

    return particles

def mean_particle_velocity(particles, local=False):
    """
    Weight-averaged velocity of all the macro-particles of the given species.

    Args:
        particles (list): List of particle species.
        local (bool): Only average over the particles of this process. Otherwise the
            sums are reduced across all JAX processes.

    Returns:
        jnp.ndarray: The three components of the mean velocity, zero for an empty population.
    """
    velocity_sum = jnp.zeros(3)
    count = 0.0
    for species in particles:
        vx, vy, vz = species.get_velocity()
        w = species.weight
        velocity_sum = velocity_sum + w * jnp.array([jnp.sum(vx), jnp.sum(vy), jnp.sum(vz)])
        count = count + w * species.get_number_of_particles()
    # sum the weighted velocities of every macro-particle

    if not local:
        velocity_sum = global_sum(velocity_sum)
        count = global_sum(jnp.asarray(count, dtype=float))
    # reduce across processes

    count = jnp.asarray(count, dtype=float)
    return jnp.where(count > 0, velocity_sum / jnp.where(count > 0, count, 1.0), 0.0)

@register_pytree_node_class
class particle_species:
    """
    Macro-particles of one species, stored as flat arrays of positions and velocities.

    Positions are indexed by direction (x1 = x, x2 = y, x3 = z) whatever the number of
    active axes. Only the arrays are pytree children, so a species can be passed through
    jitted deposition kernels while its scalar description stays static.

    Attributes:
        name (str): Name of the species.
        N_particles (int): Number of macro-particles.
        charge (float): Charge of one physical particle in Coulombs.
        mass (float): Mass of one physical particle in kg.
        T (float): Temperature used to load the velocities.
        v1, v2, v3 (array-like): Velocity of every macro-particle in m/s.
        x1, x2, x3 (array-like): Position of every macro-particle in meters.
        weight (float): Physical particles represented by one macro-particle.
        initialize_self_fields (bool): Include the species in the space-charge initialization.
    """

    def __init__(self, name, N_particles, charge, mass, T, v1, v2, v3, x1, x2, x3, weight=1, initialize_self_fields=False):
        self.name = name
        self.N_particles = N_particles
        self.charge = charge
        self.mass = mass
        self.weight = weight
        self.T = T
        self.v1 = v1
        self.v2 = v2
        self.v3 = v3
        self.x1 = x1
        self.x2 = x2
        self.x3 = x3
        self.initialize_self_fields = initialize_self_fields

    def get_name(self):
        return self.name

    def get_charge(self):
        # charge carried by one macro-particle
        return self.charge*self.weight

    def get_mass(self):
        return self.mass*self.weight

    def get_number_of_particles(self):
        return self.N_particles

    def get_velocity(self):
        return self.v1, self.v2, self.v3

    def get_position(self):
        return self.x1, self.x2, self.x3

    def tree_flatten(self):
        children = (self.v1, self.v2, self.v3, self.x1, self.x2, self.x3)
        aux_data = (self.name, self.N_particles, self.charge, self.mass, self.T, self.weight, self.initialize_self_fields)
        return children, aux_data

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        v1, v2, v3, x1, x2, x3 = children
        name, N_particles, charge, mass, T, weight, initialize_self_fields = aux_data
        return cls(
            name, N_particles, charge, mass, T, v1, v2, v3, x1, x2, x3,
            weight=weight, initialize_self_fields=initialize_self_fields
        )
