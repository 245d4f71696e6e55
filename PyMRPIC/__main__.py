# Initialize the fields of a mesh-refined PIC simulation from a TOML configuration:
# space-charge fields of the flagged particle species, then the PEC boundary conditions.

########################################## IMPORT LIBRARIES #############################################
import time
import jax
from jax import block_until_ready
# Importing relevant libraries

from PyMRPIC.utils import dump_parameters_to_toml, load_config_file
from PyMRPIC.initialization import initialize_simulation
from PyMRPIC.space_charge import initialize_self_fields
from PyMRPIC.pec import apply_pec, apply_embedded_pecs
from PyMRPIC.errors import compute_pec_error
# Importing functions from the PyMRPIC package
############################################################################################################


def run_PyMRPIC(config_file):
    simulation = initialize_simulation(config_file)
    # initialize the simulation

    levels = simulation['levels']
    boundaries = simulation['boundaries']
    particles = simulation['particles']
    constants = simulation['constants']
    simulation_parameters = simulation['simulation_parameters']
    verbose = simulation_parameters['verbose']
    E, B = simulation['E'], simulation['B']
    # unpack relevant parameters

    E = initialize_self_fields(particles, E, levels, constants, nox=simulation_parameters['nox'], verbose=verbose)
    # add the space-charge field of the flagged species

    E, B = apply_pec(E, B, levels, boundaries)
    E = apply_embedded_pecs(E, levels, simulation['pecs'])
    # apply the conductor boundary conditions

    pec_error = max(float(compute_pec_error(E[lev], levels[lev], boundaries)) for lev in range(len(levels)))
    print(f"Max tangential E on the PEC faces: {pec_error}")

    return simulation_parameters, constants, particles, E, B, pec_error


def main():
    jax.config.update("jax_enable_x64", True)
    # set Jax to use 64 bit precision
    toml_file = load_config_file()
    # load the configuration file

    start = time.time()
    # start the timer

    simulation_parameters, constants, particles, E, B, pec_error = block_until_ready(run_PyMRPIC(toml_file))
    # run the field initialization

    end = time.time()
    # end the timer

    duration = end - start

    simulation_stats = {
        "total_time": duration,
        "pec_error": pec_error,
    }

    output_file = dump_parameters_to_toml(simulation_stats, simulation_parameters, constants, particles)
    # save the parameters to an output file

    print(f"\nInitialization Complete")
    print(f"Total Time: {duration} s")
    print(f"Output written to {output_file}")


if __name__ == "__main__":
    main()
    # run the main function
