import unittest

from cloudsync.util.ids import new_boundary


class TestUtilIds(unittest.TestCase):
    def test_boundary_has_prefix(self) -> None:
        self.assertTrue(new_boundary().startswith("cloudsync-"))

    def test_boundaries_are_unique(self) -> None:
        values = {new_boundary(), new_boundary(), new_boundary()}
        self.assertEqual(len(values), 3)
