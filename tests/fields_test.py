import unittest
import jax
import jax.numpy as jnp

from PyMRPIC.geometry import build_level_worlds
from PyMRPIC.fields import (
    MeshField, yee_staggering, allocate_field, initialize_fields, initialize_nodal_field, field_from_array, check_layout
)

jax.config.update("jax_enable_x64", True)

class TestFields(unittest.TestCase):

    def setUp(self):
        simulation_parameters = {
            'dim': 3, 'geometry': 'cartesian', 'n_cell': [4, 5, 6], 'prob_lo': 0.0, 'prob_hi': 1.0,
            'max_level': 0, 'ref_ratio': 2, 'ngrow': 2, 'ng_fieldgather': 1,
        }
        self.world = build_level_worlds(simulation_parameters)[0]

    def test_yee_staggering(self):
        E_nodal = yee_staggering(self.world, 'E')
        B_nodal = yee_staggering(self.world, 'B')
        self.assertEqual(E_nodal[0], (0, 1, 1))
        self.assertEqual(E_nodal[2], (1, 1, 0))
        self.assertEqual(B_nodal[1], (0, 1, 0))

    def test_yee_staggering_in_2d(self):
        world = dict(self.world, dim=2, axis_directions=(0, 2))
        E_nodal = yee_staggering(world, 'E')
        self.assertEqual(E_nodal[0], (0, 1))
        self.assertEqual(E_nodal[1], (1, 1))
        self.assertEqual(E_nodal[2], (1, 0))

    def test_initialize_fields(self):
        E, B = initialize_fields([self.world])
        Ex, Ey, Ez = E[0]
        self.assertEqual(Ex.get_data().shape, (4 + 4, 6 + 4, 7 + 4, 1))
        self.assertEqual(Ex.valid_shape(), (4, 6, 7))
        self.assertEqual(Ez.get_name(), 'Ez')
        self.assertEqual(B[0][0].valid_shape(), (5, 5, 6))
        self.assertEqual(Ex.data_lo(), (-2, -2, -2))

    def test_valid_region(self):
        field = allocate_field(self.world, (1, 1, 1), (1, 1, 1), ncomp=2, value=1.0)
        data = field.get_data().at[field.valid_slices()].set(5.0)
        field = field.with_data(data)
        self.assertTrue(jnp.all(field.get_valid() == 5.0))
        self.assertEqual(float(jnp.sum(field.get_data() == 5.0)), 5 * 6 * 7 * 2)
        self.assertEqual(field.ncomp, 2)
        self.assertEqual(list(field.global_indices(0)), [-1, 0, 1, 2, 3, 4, 5])

    def test_field_from_array(self):
        rho = initialize_nodal_field(self.world, 1, name='rho')
        phi = field_from_array(jnp.ones((5, 6, 7)), self.world, (1, 1, 1), name='phi')
        self.assertEqual(phi.ngrow, (0, 0, 0))
        self.assertEqual(phi.valid_shape(), rho.valid_shape())
        check_layout(phi, rho)

    def test_pytree(self):
        field = allocate_field(self.world, (1, 0, 1), (1, 1, 1), name='Bx')
        doubled = jax.tree_util.tree_map(lambda x: 2 * x + 1, field)
        self.assertIsInstance(doubled, MeshField)
        self.assertEqual(doubled.nodal, (1, 0, 1))
        self.assertTrue(jnp.all(doubled.get_data() == 1.0))

if __name__ == '__main__':
    unittest.main()
