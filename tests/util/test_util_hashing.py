import hashlib
import os
import tempfile
import unittest

from cloudsync.models import CloudFile, HashType
from cloudsync.util.hashing import dropbox_content_hash, file_digest, local_matches_remote


class TestUtilHashing(unittest.TestCase):
    def setUp(self) -> None:
        self.td = tempfile.TemporaryDirectory()
        self.addCleanup(self.td.cleanup)
        self.path = os.path.join(self.td.name, "a.sav")
        with open(self.path, "wb") as f:
            f.write(b"hello")

    def test_standard_digests(self) -> None:
        self.assertEqual(file_digest(self.path, HashType.MD5), hashlib.md5(b"hello").hexdigest())
        self.assertEqual(file_digest(self.path, HashType.SHA1), hashlib.sha1(b"hello").hexdigest())
        self.assertEqual(
            file_digest(self.path, HashType.SHA256), hashlib.sha256(b"hello").hexdigest()
        )

    def test_dropbox_hash_is_hash_of_block_hashes(self) -> None:
        expected = hashlib.sha256(hashlib.sha256(b"hello").digest()).hexdigest()
        self.assertEqual(dropbox_content_hash(self.path), expected)
        self.assertEqual(file_digest(self.path, HashType.DROPBOX), expected)

    def test_empty_file_dropbox_hash(self) -> None:
        empty = os.path.join(self.td.name, "empty")
        open(empty, "wb").close()
        self.assertEqual(dropbox_content_hash(empty), hashlib.sha256(b"").hexdigest())

    def test_none_has_no_digest(self) -> None:
        with self.assertRaises(ValueError):
            file_digest(self.path, HashType.NONE)

    def test_local_matches_remote(self) -> None:
        sha1 = hashlib.sha1(b"hello").hexdigest()
        self.assertTrue(
            local_matches_remote(
                self.path, CloudFile(id="1", name="a", hash_type=HashType.SHA1, hash_value=sha1.upper())
            )
        )
        self.assertFalse(
            local_matches_remote(
                self.path, CloudFile(id="1", name="a", hash_type=HashType.SHA1, hash_value="00")
            )
        )

    def test_zero_hash_never_matches(self) -> None:
        self.assertFalse(local_matches_remote(self.path, CloudFile(id="1", name="a")))

    def test_missing_local_file(self) -> None:
        remote = CloudFile(id="1", name="a", hash_type=HashType.MD5, hash_value="x")
        self.assertFalse(local_matches_remote(os.path.join(self.td.name, "nope"), remote))
