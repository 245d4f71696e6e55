import unittest
import jax

from PyMRPIC.geometry import (
    axis_directions, coarsen_domain, refine_domain, per_axis, build_level_worlds, domain_for_patch
)

jax.config.update("jax_enable_x64", True)

class TestGeometry(unittest.TestCase):

    def setUp(self):
        self.simulation_parameters = {
            'dim': 2, 'geometry': 'cartesian', 'n_cell': [8, 16], 'prob_lo': [0.0, -1.0], 'prob_hi': [1.0, 1.0],
            'max_level': 2, 'ref_ratio': [2, 4], 'ngrow': 3, 'ng_fieldgather': 2,
        }

    def test_axis_directions(self):
        self.assertEqual(axis_directions(1), (2,))
        self.assertEqual(axis_directions(2), (0, 2))
        self.assertEqual(axis_directions(3), (0, 1, 2))

    def test_coarsen_domain(self):
        self.assertEqual(coarsen_domain((0,), (8,), (2,)), ((0,), (4,)))
        self.assertEqual(coarsen_domain((2, 3), (9, 10), (2, 2)), ((1, 1), (5, 5)))
        self.assertEqual(refine_domain((1,), (4,), (2,)), ((2,), (8,)))

    def test_per_axis(self):
        self.assertEqual(per_axis(2, 3), (2, 2, 2))
        self.assertEqual(per_axis([1, 2], 2), (1, 2))
        with self.assertRaises(AssertionError):
            per_axis([1, 2], 3)

    def test_build_level_worlds(self):
        levels = build_level_worlds(self.simulation_parameters, periodic=(True, False))
        self.assertEqual(len(levels), 3)
        self.assertEqual(levels[0]['domain_hi'], (8, 16))
        self.assertEqual(levels[1]['domain_hi'], (16, 64))
        self.assertEqual(levels[2]['domain_hi'], (32, 256))
        self.assertAlmostEqual(levels[0]['dx'][1], 0.125)
        self.assertAlmostEqual(levels[2]['dx'][0], 1.0 / 32)
        self.assertEqual(levels[0]['ref_ratio'], (1, 1))
        self.assertEqual(levels[1]['ref_ratio'], (2, 4))
        self.assertEqual(levels[1]['periodic'], (True, False))
        self.assertEqual(levels[1]['ng_fieldgather'], (2, 2))

    def test_gather_halo_cannot_exceed_the_field_halo(self):
        self.simulation_parameters['ng_fieldgather'] = 4
        with self.assertRaises(AssertionError):
            build_level_worlds(self.simulation_parameters)

    def test_domain_for_patch(self):
        levels = build_level_worlds(self.simulation_parameters)
        self.assertEqual(domain_for_patch(levels, 1, 'fine'), ((0, 0), (16, 64)))
        self.assertEqual(domain_for_patch(levels, 1, 'coarse'), ((0, 0), (8, 16)))
        self.assertEqual(domain_for_patch(levels, 0, 'coarse'), ((0, 0), (8, 16)))

if __name__ == '__main__':
    unittest.main()
