import unittest

from cloudsync.util.mime import FOLDER_MIME, OCTET_STREAM, is_folder


class TestUtilMime(unittest.TestCase):
    def test_is_folder(self) -> None:
        self.assertTrue(is_folder(FOLDER_MIME))
        self.assertFalse(is_folder("text/plain"))
        self.assertFalse(is_folder(OCTET_STREAM))
