import copy
import json
import unittest
from urllib.parse import parse_qs

from cloudsync.auth import AccessToken, AuthInfo, AuthManager, AuthStatus, MemoryCredentialStore, ProviderState
from cloudsync.errors import AuthError
from cloudsync.transport import HttpRequest, HttpResponse

TOKEN_URL = "https://login.example.com/oauth2/token"
NOW = 1000.0


class FakeTransport:
    def __init__(self, responses) -> None:
        self.responses = list(responses)
        self.requests: list[HttpRequest] = []

    def submit(self, request: HttpRequest):
        self.requests.append(copy.deepcopy(request))
        return self.responses.pop(0)


def json_response(status: int, payload) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps(payload).encode("utf-8"))


def make_manager(responses, *, auth_info=None, store=None, redirect_uri=None):
    store = store or MemoryCredentialStore()
    state = ProviderState(
        name="onedrive",
        auth_info=auth_info or AuthInfo.oauth("cid", client_secret="sec", refresh_token="rt"),
        credential_store=store,
        clock=lambda: NOW,
    )
    transport = FakeTransport(responses)
    manager = AuthManager(state, transport, token_url=TOKEN_URL, redirect_uri=redirect_uri)
    return manager, state, transport, store


class ReadOnlyCredentialStore(MemoryCredentialStore):
    """A store whose writes always fail, like a credential file on a read-only disk."""

    def save(self, provider_name: str, token: str, expiration: float) -> None:
        raise AuthError("Failed to save credential file", details={"path": "/ro/creds.json"})

    def save_refresh_token(self, provider_name: str, refresh_token: str) -> None:
        raise AuthError("Failed to save credential file", details={"path": "/ro/creds.json"})


class TestAuthManagerRefresh(unittest.TestCase):
    def test_successful_refresh_stores_and_persists_token(self) -> None:
        manager, state, transport, store = make_manager(
            [json_response(200, {"access_token": "abc", "expires_in": 3600})]
        )
        calls: list[bool] = []

        manager.refresh(calls.append)

        self.assertEqual(calls, [True])
        self.assertEqual(state.access_token, AccessToken("abc", NOW + 3600))
        self.assertEqual(store.load("onedrive"), AccessToken("abc", NOW + 3600))
        self.assertTrue(manager.ready_for_request())
        self.assertIs(manager.status, AuthStatus.VALID)

    def test_refresh_request_is_form_encoded_post(self) -> None:
        manager, _, transport, _ = make_manager(
            [json_response(200, {"access_token": "abc", "expires_in": 3600})],
            redirect_uri="https://example.com/cb",
        )
        manager.refresh(lambda ok: None)

        request = transport.requests[0]
        self.assertEqual(request.url, TOKEN_URL)
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.headers["Content-Type"], "application/x-www-form-urlencoded")
        self.assertFalse(request.log_body)
        form = parse_qs(request.body.decode("ascii"))
        self.assertEqual(
            form,
            {
                "client_id": ["cid"],
                "client_secret": ["sec"],
                "redirect_uri": ["https://example.com/cb"],
                "refresh_token": ["rt"],
                "grant_type": ["refresh_token"],
            },
        )
        self.assertNotIn("Authorization", request.headers)

    def test_configured_redirect_uri_wins(self) -> None:
        manager, _, transport, _ = make_manager(
            [json_response(200, {"access_token": "abc", "expires_in": 3600})],
            auth_info=AuthInfo.oauth("cid", refresh_token="rt", redirect_uri="http://localhost"),
            redirect_uri="https://example.com/cb",
        )
        manager.refresh(lambda ok: None)
        form = parse_qs(transport.requests[0].body.decode("ascii"))
        self.assertEqual(form["redirect_uri"], ["http://localhost"])
        self.assertNotIn("client_secret", form)

    def test_200_without_access_token_reports_success_but_stores_nothing(self) -> None:
        manager, state, _, store = make_manager(
            [json_response(200, {"token_type": "Bearer", "expires_in": 3600})]
        )
        calls: list[bool] = []

        with self.assertLogs("cloudsync.auth.manager", level="WARNING"):
            manager.refresh(calls.append)

        self.assertEqual(calls, [True])
        self.assertIsNone(state.access_token)
        self.assertIsNone(store.load("onedrive"))
        self.assertFalse(manager.ready_for_request())

    def test_200_without_expires_in_stores_nothing(self) -> None:
        manager, state, _, _ = make_manager([json_response(200, {"access_token": "abc"})])
        calls: list[bool] = []
        manager.refresh(calls.append)

        self.assertEqual(calls, [True])
        self.assertIsNone(state.access_token)

    def test_rejected_refresh_discards_prior_token(self) -> None:
        manager, state, _, _ = make_manager([json_response(400, {"error": "invalid_grant"})])
        state.access_token = AccessToken("old", NOW + 10)
        calls: list[bool] = []

        manager.refresh(calls.append)

        self.assertEqual(calls, [False])
        self.assertIsNone(state.access_token)
        self.assertIs(manager.status, AuthStatus.NO_TOKEN)

    def test_server_error_reports_failure(self) -> None:
        manager, _, _, _ = make_manager([HttpResponse(status=500)])
        calls: list[bool] = []
        manager.refresh(calls.append)
        self.assertEqual(calls, [False])

    def test_transport_failure_calls_back_exactly_once(self) -> None:
        manager, state, transport, _ = make_manager([None])
        calls: list[bool] = []

        manager.refresh(calls.append)

        self.assertEqual(calls, [False])
        self.assertIsNone(state.access_token)
        self.assertEqual(len(transport.requests), 1)

    def test_rotated_refresh_token_is_saved(self) -> None:
        manager, state, _, store = make_manager(
            [json_response(200, {"access_token": "abc", "expires_in": 60, "refresh_token": "rt2"})]
        )
        manager.refresh(lambda ok: None)

        self.assertEqual(state.refresh_token, "rt2")
        self.assertEqual(store.load_refresh_token("onedrive"), "rt2")

    def test_unwritable_store_keeps_token_in_memory(self) -> None:
        manager, state, _, _ = make_manager(
            [json_response(200, {"access_token": "abc", "expires_in": 3600, "refresh_token": "rt2"})],
            store=ReadOnlyCredentialStore(),
        )
        calls: list[bool] = []

        with self.assertLogs("cloudsync.auth.manager", level="WARNING") as logs:
            manager.refresh(calls.append)

        self.assertEqual(calls, [True])
        self.assertEqual(state.access_token, AccessToken("abc", NOW + 3600))
        self.assertEqual(state.refresh_token, "rt2")
        self.assertTrue(manager.ready_for_request())
        self.assertIs(manager.status, AuthStatus.VALID)
        self.assertTrue(any("kept in memory only" in line for line in logs.output))

    def test_refresh_without_refresh_token_fails_without_request(self) -> None:
        manager, _, transport, _ = make_manager([], auth_info=AuthInfo.oauth("cid"))
        calls: list[bool] = []

        with self.assertLogs("cloudsync.auth.manager", level="WARNING"):
            manager.refresh(calls.append)

        self.assertEqual(calls, [False])
        self.assertEqual(transport.requests, [])


class TestAuthManagerAuthenticate(unittest.TestCase):
    def test_authenticate_success(self) -> None:
        manager, _, _, _ = make_manager(
            [json_response(200, {"access_token": "abc", "expires_in": 3600})]
        )
        self.assertTrue(manager.authenticate().ok)

    def test_authenticate_without_token_in_response_fails(self) -> None:
        manager, _, _, _ = make_manager([json_response(200, {})])
        result = manager.authenticate()
        self.assertIsInstance(result.error, AuthError)

    def test_authenticate_without_refresh_token(self) -> None:
        manager, _, transport, _ = make_manager([], auth_info=AuthInfo.oauth("cid"))
        result = manager.authenticate()
        self.assertIsInstance(result.error, AuthError)
        self.assertEqual(transport.requests, [])

    def test_persisted_token_is_loaded(self) -> None:
        store = MemoryCredentialStore()
        store.save("onedrive", "persisted", NOW + 100)
        manager, state, _, _ = make_manager([], store=store)

        self.assertEqual(state.access_token.token, "persisted")
        self.assertTrue(manager.ready_for_request())

        request = HttpRequest(url="https://api.example.com")
        manager.apply_authorization(request)
        self.assertEqual(request.headers["Authorization"], "Bearer persisted")

    def test_expired_persisted_token_is_not_ready(self) -> None:
        store = MemoryCredentialStore()
        store.save("onedrive", "persisted", NOW - 1)
        manager, _, _, _ = make_manager([], store=store)
        self.assertFalse(manager.ready_for_request())


if __name__ == "__main__":
    unittest.main()
