import unittest

import cloudsync


class TestPublicApi(unittest.TestCase):
    def test_top_level_exports_exist(self) -> None:
        self.assertTrue(hasattr(cloudsync, "CloudStorageManager"))
        self.assertTrue(hasattr(cloudsync, "FolderType"))
        self.assertTrue(hasattr(cloudsync, "AuthInfo"))
        self.assertTrue(hasattr(cloudsync, "AuthManager"))

        self.assertTrue(hasattr(cloudsync, "GoogleDriveProvider"))
        self.assertTrue(hasattr(cloudsync, "OneDriveProvider"))
        self.assertTrue(hasattr(cloudsync, "DropboxProvider"))

        self.assertTrue(hasattr(cloudsync, "RestOperation"))
        self.assertTrue(hasattr(cloudsync, "paginate_into"))
        self.assertTrue(hasattr(cloudsync, "CloudFolder"))
        self.assertTrue(hasattr(cloudsync, "ProviderResult"))

        self.assertTrue(hasattr(cloudsync, "CloudSyncError"))
        self.assertTrue(hasattr(cloudsync, "InvalidStateError"))

    def test___all___is_defined(self) -> None:
        self.assertTrue(hasattr(cloudsync, "__all__"))
        self.assertIn("CloudStorageManager", cloudsync.__all__)
        self.assertIn("CloudSyncError", cloudsync.__all__)
        for name in cloudsync.__all__:
            self.assertTrue(hasattr(cloudsync, name), name)


if __name__ == "__main__":
    unittest.main()
