import os
# import external libraries

from PyMRPIC.utils import update_parameters_from_toml, make_dir
from PyMRPIC.geometry import build_level_worlds, print_stats
from PyMRPIC.boundaryconditions import read_field_boundaries_from_toml, periodicity_from_boundaries
from PyMRPIC.fields import initialize_fields
from PyMRPIC.particle import load_particles_from_toml
from PyMRPIC.pec import read_pec_boundaries_from_toml
# import internal libraries

def default_parameters():
    """
    Returns a dictionary of default parameters for the simulation.

    Returns:
    tuple: (simulation_parameters, constants) dictionaries of default values.
    """
    simulation_parameters = {
        "name": "Default Simulation",
        "output_dir": os.getcwd(),
        "dim": 3,  # number of spatial axes: 1 (z), 2 (x, z) or 3 (x, y, z)
        "geometry": "cartesian",  # cartesian or rz
        "n_cell": 32,  # number of cells of level 0, scalar or one value per axis
        "prob_lo": -1e-2,  # lower corner of the domain in meters
        "prob_hi": 1e-2,  # upper corner of the domain in meters
        "max_level": 0,  # finest refinement level
        "ref_ratio": 2,  # refinement ratio between levels
        "ngrow": 2,  # halo width of the E and B fields
        "ng_fieldgather": 1,  # halo points used by the particle gather
        "nox": 1,  # order of the particle shape, halo of the charge density
        "field_boundary_lo": "periodic",  # pec, periodic, absorbing, open, none
        "field_boundary_hi": "periodic",
        "verbose": False, # boolean for printing verbose output
    }
    # dictionary for simulation parameters

    constants = {
        "eps": 8.85418782e-12,  # permitivity of freespace
        "C": 2.99792458e8,  # Speed of light in m/s
        "kb": 1.380649e-23,  # Boltzmann's constant in J/K
    }

    return simulation_parameters, constants
    # return the dictionaries


def initialize_simulation(toml_file):
    """
    Initializes the mesh levels, boundaries, particles and fields from a configuration dictionary.

    Args:
        toml_file (dict): Configuration loaded from a TOML file. If None, default parameters are used.

    Returns:
        dict: The simulation with the keys 'levels', 'boundaries', 'particles', 'pecs', 'E', 'B',
            'simulation_parameters' and 'constants'.
    """
    simulation_parameters, constants = default_parameters()
    # load the default parameters

    if toml_file is not None:
        simulation_parameters, constants = update_parameters_from_toml(toml_file, simulation_parameters, constants)
    else:
        toml_file = {}

    print(f"Initializing Simulation: { simulation_parameters['name'] }\n")

    dim = simulation_parameters['dim']
    boundaries = read_field_boundaries_from_toml(
        {'simulation_parameters': {
            'field_boundary_lo': simulation_parameters['field_boundary_lo'],
            'field_boundary_hi': simulation_parameters['field_boundary_hi'],
        }},
        dim,
    )
    # per (axis, side) field boundary kinds

    levels = build_level_worlds(simulation_parameters, periodic=periodicity_from_boundaries(boundaries))
    print_stats(levels)
    # build the geometry of every level

    make_dir(f"{simulation_parameters['output_dir']}/data")
    # create the data directory if it doesn't exist

    particles = load_particles_from_toml(toml_file, levels, constants)
    # load the particles from the configuration file

    pecs = read_pec_boundaries_from_toml(toml_file, levels[0])
    for pec in pecs:
        print(f"Embedded conductor: {pec}")
    # load the embedded conductors

    E, B = initialize_fields(levels)
    # initialize the electric and magnetic fields

    return {
        'levels': levels,
        'boundaries': boundaries,
        'particles': particles,
        'pecs': pecs,
        'E': E,
        'B': B,
        'simulation_parameters': simulation_parameters,
        'constants': constants,
    }
