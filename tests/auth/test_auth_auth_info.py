import unittest

from cloudsync.auth.auth_info import AuthInfo


class TestAuthInfo(unittest.TestCase):
    def test_oauth_requires_client_id(self) -> None:
        with self.assertRaises(ValueError):
            AuthInfo(kind="oauth", data={})
        with self.assertRaises(ValueError):
            AuthInfo(kind="oauth", data={"client_id": "  "})

    def test_static_requires_access_token(self) -> None:
        with self.assertRaises(ValueError):
            AuthInfo(kind="static", data={"client_id": "x"})

        info = AuthInfo.static("tok")
        self.assertFalse(info.is_oauth)
        self.assertEqual(info.access_token, "tok")
        self.assertIsNone(info.refresh_token)

    def test_unknown_kind(self) -> None:
        with self.assertRaises(ValueError):
            AuthInfo(kind="password", data={"client_id": "x"})

    def test_data_must_be_dict(self) -> None:
        with self.assertRaises(TypeError):
            AuthInfo(kind="oauth", data=[("client_id", "x")])  # type: ignore[arg-type]

    def test_oauth_builder_omits_empty_fields(self) -> None:
        info = AuthInfo.oauth("cid", client_secret="", refresh_token="rt")
        self.assertTrue(info.is_oauth)
        self.assertEqual(info.data, {"client_id": "cid", "refresh_token": "rt"})
        self.assertEqual(info.client_id, "cid")
        self.assertIsNone(info.client_secret)
        self.assertIsNone(info.redirect_uri)


if __name__ == "__main__":
    unittest.main()
