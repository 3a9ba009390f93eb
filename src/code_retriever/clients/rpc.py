"""
Minimal Ethereum JSON-RPC client: ``eth_getCode`` and a hash of it.
"""

import hashlib
from typing import Any, Dict, Optional

import requests

from code_retriever.core.errors import NotAContractError, RpcError

EMPTY_CODE = "0x"


class RpcClient:
    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method: str, *params: Any) -> Any:
        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(params),
            "id": 1,
        }
        try:
            resp = self.session.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as e:
            raise RpcError(f"{method} failed: {e}") from e
        except ValueError as e:
            raise RpcError(f"{method} returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise RpcError(f"{method} returned unexpected payload: {body!r}")
        if body.get("error") is not None:
            raise RpcError(f"{method} error: {body['error']}")
        return body.get("result")

    def get_code(self, address: str) -> str:
        code = self._call("eth_getCode", address, "latest")
        if not isinstance(code, str):
            raise RpcError(f"eth_getCode returned non-string result: {code!r}")
        return code

    def is_contract(self, address: str) -> bool:
        return self.get_code(address) != EMPTY_CODE

    def get_code_hash(self, address: str) -> str:
        """sha256 of the hex bytecode string, ``0x``-prefixed (66 chars)."""
        code = self.get_code(address)
        if code == EMPTY_CODE:
            raise NotAContractError(f"no code found at address {address}")
        return "0x" + hashlib.sha256(code.encode("utf-8")).hexdigest()

    def close(self) -> None:
        self.session.close()
