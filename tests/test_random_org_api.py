import os
import unittest
from unittest.mock import patch

import requests

from clublotto.errors import RandomnessServiceError
from clublotto.randomness.api import RANDOM_ORG_URL, RandomOrgClient


class DummyResponse:
    def __init__(self, json_data=None, *, status_error: Exception = None):
        self._json = json_data
        self.status_error = status_error

    def json(self):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json

    def raise_for_status(self):
        if self.status_error is not None:
            raise self.status_error


class DummySession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _signed_result(data, signature="c2ln"):
    return {
        "jsonrpc": "2.0",
        "result": {
            "random": {
                "method": "generateSignedIntegers",
                "data": data,
                "completionTime": "2025-06-30 20:00:00Z",
                "serialNumber": 7,
            },
            "signature": signature,
            "bitsUsed": 20,
        },
        "id": 1,
    }


class TestRandomOrgClient(unittest.TestCase):
    @patch("clublotto.randomness.api.load_dotenv")
    def test_requires_api_key(self, mock_load_dotenv):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                RandomOrgClient()
        mock_load_dotenv.assert_called_once()

    @patch("clublotto.randomness.api.load_dotenv")
    def test_api_key_from_environment(self, _):
        with patch.dict(os.environ, {"RANDOM_ORG_API_KEY": "env-key"}, clear=True):
            client = RandomOrgClient(session=DummySession())
        self.assertEqual(client.api_key, "env-key")

    def test_generate_signed_integers_payload(self):
        session = DummySession(DummyResponse(_signed_result([9, 2, 30, 14])))
        client = RandomOrgClient("key-1", session=session, timeout=12)

        signed = client.generate_signed_integers(
            4, 1, 32, user_data={"drawDate": "2025-06-30"}
        )

        self.assertEqual(signed.data, [9, 2, 30, 14])
        self.assertEqual(signed.signature, "c2ln")
        self.assertEqual(signed.random["serialNumber"], 7)
        self.assertEqual(signed.completion_time, "2025-06-30 20:00:00Z")

        [call] = session.calls
        self.assertEqual(call["url"], RANDOM_ORG_URL)
        self.assertEqual(call["timeout"], 12)
        body = call["json"]
        self.assertEqual(body["jsonrpc"], "2.0")
        self.assertEqual(body["method"], "generateSignedIntegers")
        self.assertEqual(body["id"], 1)
        self.assertEqual(
            body["params"],
            {
                "apiKey": "key-1",
                "n": 4,
                "min": 1,
                "max": 32,
                "replacement": False,
                "base": 10,
                "userData": {"drawDate": "2025-06-30"},
            },
        )

    def test_request_ids_increase(self):
        session = DummySession(
            DummyResponse(_signed_result([1, 2, 3, 4])),
            DummyResponse({"result": {"authenticity": True}}),
        )
        client = RandomOrgClient("key", session=session)
        client.generate_signed_integers(4, 1, 32)
        client.verify_signature({"data": [1, 2, 3, 4]}, "c2ln")
        self.assertEqual([c["json"]["id"] for c in session.calls], [1, 2])
        self.assertNotIn("userData", session.calls[0]["json"]["params"])

    def test_rpc_error_is_raised(self):
        error = {"code": 402, "message": "The API key you specified is not running"}
        client = RandomOrgClient("key", session=DummySession(DummyResponse({"error": error})))
        with self.assertRaises(RandomnessServiceError) as ctx:
            client.generate_signed_integers(4, 1, 32)
        self.assertIn("not running", str(ctx.exception))
        self.assertEqual(ctx.exception.details, error)

    def test_transport_failures_are_wrapped(self):
        for response in (
            requests.ConnectionError("no route"),
            DummyResponse(status_error=requests.HTTPError("503 Server Error")),
            DummyResponse(ValueError("not json")),
        ):
            with self.subTest(response=response):
                client = RandomOrgClient("key", session=DummySession(response))
                with self.assertRaises(RandomnessServiceError):
                    client.generate_signed_integers(4, 1, 32)

    def test_malformed_results_are_rejected(self):
        missing_signature = _signed_result([1, 2, 3, 4], signature=None)
        wrong_count = _signed_result([1, 2, 3])
        no_random = {"result": {"signature": "c2ln"}}
        no_result = {"jsonrpc": "2.0", "id": 1}
        for payload in (missing_signature, wrong_count, no_random, no_result):
            with self.subTest(payload=payload):
                client = RandomOrgClient("key", session=DummySession(DummyResponse(payload)))
                with self.assertRaises(RandomnessServiceError):
                    client.generate_signed_integers(4, 1, 32)

    def test_verify_signature(self):
        session = DummySession(DummyResponse({"result": {"authenticity": False}}))
        client = RandomOrgClient("key", session=session)
        self.assertFalse(client.verify_signature({"data": [1]}, "c2ln"))
        params = session.calls[0]["json"]["params"]
        self.assertEqual(params, {"random": {"data": [1]}, "signature": "c2ln"})
        self.assertEqual(session.calls[0]["json"]["method"], "verifySignature")


if __name__ == "__main__":
    unittest.main()
