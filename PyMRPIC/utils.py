import jax
from jax.experimental import multihost_utils
import argparse
import jax.numpy as jnp
import numpy as np
import toml
import os
from datetime import datetime
import importlib.metadata
from scipy import stats
# import external libraries

def mae(x, y):
    """Mean absolute difference of two broadcastable arrays."""
    return jnp.mean( jnp.abs(x-y) )


def convergence_test(func, nxs=None):
    """
    Measure the order of accuracy of a discretization from a sweep of grid sizes.

    Args:
        func (callable): Called with a cell count nx, returns (error, dx) for that grid.
        nxs (list, optional): Cell counts of the sweep. Defaults to 16, 24, ..., 64.

    Returns:
        float: |slope| of the least squares line through (log dx, log error).
    """

    if nxs is None:
        nxs = [8*i + 16 for i in range(7)]

    errors = []
    dxs    = []
    for nx in nxs:
        error, dx = func(nx)
        errors.append( error )
        dxs.append( dx )
    # one error measurement per grid

    fit = stats.linregress( np.log(np.asarray(dxs)), np.log(np.asarray(errors)) )
    return np.abs( fit.slope )

def make_dir(path):
    if not os.path.exists(path):
        os.makedirs(path)


def vth_to_T(vth, m, kb):
    """Temperature in K of a species of mass m with thermal speed vth."""
    return m * vth**2 / (kb)

def T_to_vth(T, m, kb):
    """Thermal speed sqrt(kb T / m) of a species of mass m at temperature T."""
    return jnp.sqrt(kb * T / m)

def load_config_file(argv=None):
    """
    Read the simulation configuration named by the --config command line option.

    Args:
        argv (list, optional): Arguments to parse instead of sys.argv.

    Returns:
        dict: The parsed TOML tables.
    """
    parser = argparse.ArgumentParser(description="Mesh-refined PIC field initialization using Jax")
    parser.add_argument('--config', type=str, required=True, help='Path to the configuration file')
    args = parser.parse_args(argv)
    print(f"Using Configuration File: {args.config}")
    return toml.load(args.config)

def global_sum(value):
    """
    Sum an array over all the JAX processes.

    With a single process the value is returned unchanged.

    Args:
        value (array-like): The local contribution.

    Returns:
        jnp.ndarray: The sum of the contributions of every process.
    """
    value = jnp.asarray(value)
    if jax.process_count() == 1:
        return value
    gathered = multihost_utils.process_allgather(value)
    # stacked along a new leading axis, one entry per process
    return jnp.sum(jnp.asarray(gathered), axis=0)

def update_parameters_from_toml(config, simulation_parameters, constants):
    """
    Overwrite defaults with the [simulation_parameters] and [constants] tables of a config.

    Keys that have no default are ignored.

    Returns:
        tuple: (simulation_parameters, constants)
    """
    for table, defaults in (("simulation_parameters", simulation_parameters), ("constants", constants)):
        for key, value in config.get(table, {}).items():
            if key in defaults:
                defaults[key] = value

    return simulation_parameters, constants

def to_toml_compatible(tree):
    return jax.tree_util.tree_map(lambda x: x.tolist() if isinstance(x, (jnp.ndarray, np.ndarray)) else x, tree)

def species_summary(species):
    return {
        "name": species.get_name(),
        "N_particles": int(species.get_number_of_particles()),
        "weight": float(species.weight),
        "charge": float(species.charge),
        "mass": float(species.mass),
        "temperature": float(species.T),
        "macroparticle charge": float(species.get_charge()),
        "macroparticle mass": float(species.get_mass()),
        "initialize_self_fields": bool(species.initialize_self_fields),
    }

def dump_parameters_to_toml(simulation_stats, simulation_parameters, constants, particles):
    """
    Record a run in <output_dir>/data/output.toml.

    The file holds the run statistics, the parameters and constants actually used, a summary of
    every particle species and the versions of PyMRPIC and of its numerical stack.

    Returns:
        str: Path of the written file.
    """

    data_dir = os.path.join(simulation_parameters["output_dir"], "data")
    make_dir(data_dir)
    output_file = os.path.join(data_dir, "output.toml")

    try:
        version = importlib.metadata.version('PyMRPIC')
    except importlib.metadata.PackageNotFoundError:
        version = "unknown"
    # running from a source checkout

    record = {
        "simulation_stats": to_toml_compatible(simulation_stats),
        "simulation_parameters": to_toml_compatible(simulation_parameters),
        "constants": to_toml_compatible(constants),
        "particles": [species_summary(species) for species in particles],
        "version": {
            "PyMRPIC_version": version,
            "date": datetime.now().strftime("%Y-%m-%d"),
        },
        "package_versions": {
            "jax": jax.__version__,
            "numpy": np.__version__,
            "toml": toml.__version__,
        },
    }

    with open(output_file, 'w') as f:
        toml.dump(record, f)

    return output_file
