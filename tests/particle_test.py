import unittest
import jax
import jax.numpy as jnp

from PyMRPIC.geometry import build_level_worlds
from PyMRPIC.particle import (
    particle_species, load_particles_from_toml, mean_particle_velocity, grab_particle_keys, read_value
)

jax.config.update("jax_enable_x64", True)


def make_species(vx, vy, vz, weight=1.0):
    vx, vy, vz = (jnp.asarray(v, dtype=float) for v in (vx, vy, vz))
    zeros = jnp.zeros_like(vx)
    return particle_species(
        name='electrons', N_particles=vx.shape[0], charge=-1.0, mass=1.0, T=0.0,
        v1=vx, v2=vy, v3=vz, x1=zeros, x2=zeros, x3=zeros, weight=weight
    )


class TestParticleMethods(unittest.TestCase):

    def setUp(self):
        simulation_parameters = {
            'dim': 2, 'geometry': 'cartesian', 'n_cell': [4, 8], 'prob_lo': [-1.0, 0.0], 'prob_hi': [1.0, 4.0],
            'max_level': 0, 'ref_ratio': 2, 'ngrow': 1, 'ng_fieldgather': 1,
        }
        self.levels = build_level_worlds(simulation_parameters)
        self.constants = {'kb': 1.380649e-23}

    def test_mean_velocity(self):
        species = make_species([1.0, 3.0], [0.0, 0.0], [-2.0, 2.0])
        mean = mean_particle_velocity([species])
        self.assertTrue(jnp.allclose(mean, jnp.array([2.0, 0.0, 0.0])))

    def test_mean_velocity_is_weighted(self):
        light = make_species([0.0], [0.0], [0.0], weight=1.0)
        heavy = make_species([4.0], [0.0], [0.0], weight=3.0)
        mean = mean_particle_velocity([light, heavy], local=True)
        self.assertAlmostEqual(float(mean[0]), 3.0)

    def test_mean_velocity_of_an_empty_population(self):
        species = make_species([], [], [])
        mean = mean_particle_velocity([species])
        self.assertTrue(jnp.all(mean == 0.0))
        self.assertTrue(jnp.all(mean_particle_velocity([]) == 0.0))

    def test_load_particles_from_toml(self):
        config = {
            'simulation_parameters': {},
            'particle1': {
                'name': 'beam', 'charge': -1.602e-19, 'mass': 9.109e-31, 'N_particles': 200,
                'drift': [0.0, 0.0, 1e7], 'initialize_self_fields': True, 'zmin': 1.0, 'zmax': 2.0,
            },
            'particle2': {'name': 'ions', 'charge': 1.602e-19, 'mass': 1.67e-27, 'N_particles': 10, 'temperature': 100.0},
        }
        self.assertEqual(grab_particle_keys(config), ['particle1', 'particle2'])
        particles = load_particles_from_toml(config, self.levels, self.constants)
        self.assertEqual(len(particles), 2)

        beam, ions = particles
        x, y, z = beam.get_position()
        vx, vy, vz = beam.get_velocity()
        self.assertEqual(x.shape, (200,))
        self.assertTrue(jnp.all((x >= -1.0) & (x <= 1.0)))
        self.assertTrue(jnp.all((z >= 1.0) & (z <= 2.0)))
        self.assertTrue(jnp.all(y == 0.0))
        self.assertTrue(jnp.allclose(vz, 1e7))
        self.assertTrue(beam.initialize_self_fields)
        self.assertFalse(ions.initialize_self_fields)
        self.assertGreater(float(jnp.std(ions.get_velocity()[0])), 0.0)

    def test_read_value(self):
        config = {'particle': {'weight': 5.0}}
        self.assertEqual(read_value('weight', 'particle', config, 1.0), 5.0)
        self.assertEqual(read_value('charge', 'particle', config, 1.0), 1.0)

    def test_pytree_round_trip(self):
        species = make_species([1.0, 2.0], [0.0, 0.0], [0.0, 0.0], weight=2.0)
        leaves, treedef = jax.tree_util.tree_flatten(species)
        restored = jax.tree_util.tree_unflatten(treedef, leaves)
        self.assertEqual(restored.get_name(), 'electrons')
        self.assertEqual(restored.get_charge(), -2.0)
        self.assertEqual(restored.get_mass(), 2.0)
        self.assertTrue(jnp.all(restored.get_velocity()[0] == jnp.array([1.0, 2.0])))

if __name__ == '__main__':
    unittest.main()
