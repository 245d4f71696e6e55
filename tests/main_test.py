import os
import tempfile
import unittest
import jax
import jax.numpy as jnp

from PyMRPIC.__main__ import run_PyMRPIC
from PyMRPIC.utils import dump_parameters_to_toml

jax.config.update("jax_enable_x64", True)

class TestMain(unittest.TestCase):

    def test_run_initializes_the_self_field_between_conductors(self):
        with tempfile.TemporaryDirectory() as tmp:
            config = {
                'simulation_parameters': {
                    'output_dir': tmp, 'dim': 1, 'n_cell': 32, 'prob_lo': 0.0, 'prob_hi': 1.0,
                    'field_boundary_lo': 'pec', 'field_boundary_hi': 'pec',
                },
                'particle1': {
                    'name': 'beam', 'charge': -1.602e-19, 'mass': 9.109e-31, 'N_particles': 100, 'weight': 1e4,
                    'drift': [0.0, 0.0, 1e8], 'zmin': 0.4, 'zmax': 0.6, 'initialize_self_fields': True,
                },
            }
            simulation_parameters, constants, particles, E, B, pec_error = run_PyMRPIC(config)
            self.assertEqual(pec_error, 0.0)

            Ez = E[0][2].get_valid()[:, 0]
            self.assertGreater(float(jnp.max(jnp.abs(Ez))), 0.0)
            self.assertLess(float(Ez[0]) * float(Ez[-1]), 0.0)
            # the field of a negative slab points inwards on both sides

            output_file = dump_parameters_to_toml({'total_time': 0.0}, simulation_parameters, constants, particles)
            self.assertTrue(os.path.exists(output_file))

if __name__ == '__main__':
    unittest.main()
