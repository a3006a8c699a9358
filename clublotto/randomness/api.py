"""Client for RANDOM.ORG's signed JSON-RPC API."""

from __future__ import annotations

import itertools
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests
from dotenv import load_dotenv

from ..errors import RandomnessServiceError

logger = logging.getLogger(__name__)

RANDOM_ORG_URL = "https://api.random.org/json-rpc/4/invoke"


@dataclass(frozen=True)
class SignedIntegers:
    """Integers returned by ``generateSignedIntegers``.

    Attributes
    ----------
    data : list[int]
        The integers in the order RANDOM.ORG produced them.
    signature : str
        Base64 signature over ``random``.
    random : dict
        The complete signed object; it must be stored unchanged for
        :meth:`RandomOrgClient.verify_signature` to succeed later.
    completion_time : Optional[str]
        Server-side completion timestamp.
    """

    data: list[int]
    signature: str
    random: dict
    completion_time: Optional[str] = None


class RandomOrgClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        url: str = RANDOM_ORG_URL,
        timeout: float = 45,
    ):
        load_dotenv()
        key = api_key or os.getenv("RANDOM_ORG_API_KEY")
        if not key:
            raise ValueError("Environment variable 'RANDOM_ORG_API_KEY' is not set")

        self.api_key = key
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout
        self._ids = itertools.count(1)

    @property
    def headers(self) -> Mapping[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    # -------- core request --------
    def _invoke(self, method: str, params: dict) -> dict:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        try:
            r = self.session.post(
                self.url, json=payload, headers=self.headers, timeout=self.timeout
            )
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            # Never include the payload here: it carries the API key.
            raise RandomnessServiceError(f"RANDOM.ORG {method} request failed: {exc}") from exc

        if not isinstance(body, dict):
            raise RandomnessServiceError(f"Unexpected RANDOM.ORG response: {body!r}")
        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RandomnessServiceError(
                f"RANDOM.ORG {method} returned an error: {message}", details=error
            )
        result = body.get("result")
        if not isinstance(result, dict):
            raise RandomnessServiceError(f"RANDOM.ORG {method} response has no result")
        return result

    # -------- API callers --------
    def generate_signed_integers(
        self,
        n: int,
        low: int,
        high: int,
        *,
        replacement: bool = False,
        user_data: Optional[dict[str, Any]] = None,
    ) -> SignedIntegers:
        """Request ``n`` integers in ``[low, high]`` with a verifiable signature.

        ``user_data`` is embedded in the signed object, which ties the numbers
        to the draw they were requested for.
        """

        params: dict[str, Any] = {
            "apiKey": self.api_key,
            "n": n,
            "min": low,
            "max": high,
            "replacement": replacement,
            "base": 10,
        }
        if user_data is not None:
            params["userData"] = user_data

        logger.debug(f"Requesting {n} signed integers in [{low}, {high}]")
        result = self._invoke("generateSignedIntegers", params)

        random_obj = result.get("random")
        signature = result.get("signature")
        if not isinstance(random_obj, dict) or "data" not in random_obj:
            raise RandomnessServiceError("Invalid response from RANDOM.ORG: missing random data")
        if not signature:
            raise RandomnessServiceError("Invalid response from RANDOM.ORG: missing signature")

        data = random_obj["data"]
        if not isinstance(data, list) or len(data) != n:
            raise RandomnessServiceError(
                f"RANDOM.ORG returned {data!r}; expected {n} integers"
            )
        return SignedIntegers(
            data=[int(v) for v in data],
            signature=signature,
            random=random_obj,
            completion_time=random_obj.get("completionTime"),
        )

    def verify_signature(self, random: dict, signature: str) -> bool:
        """Ask RANDOM.ORG whether ``signature`` authenticates ``random``."""

        result = self._invoke("verifySignature", {"random": random, "signature": signature})
        return bool(result.get("authenticity"))


__all__ = ["RANDOM_ORG_URL", "RandomOrgClient", "SignedIntegers"]
