"""
Etherscan ``contract/getsourcecode`` client.
"""

from typing import Optional

import requests
from pydantic import ValidationError

from code_retriever.core.errors import EtherscanError, RateLimitError
from code_retriever.core.logging import get_logger
from code_retriever.core.rate_limiter import RateLimiter
from code_retriever.core.schemas import EtherscanResponse, SourceCode

_LOG = get_logger(__name__)

DEFAULT_URL = "https://api.etherscan.io/api"


class EtherscanClient:
    """Fetches verified source for one address per call, throttled by ``limiter``."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_URL,
        limiter: Optional[RateLimiter] = None,
        timeout: float = 10.0,
        limiter_timeout: Optional[float] = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.limiter = limiter or RateLimiter()
        self.timeout = timeout
        self.limiter_timeout = limiter_timeout
        self.session = session or requests.Session()

    def get_source_code(self, address: str) -> SourceCode:
        """Return the first ``result`` item for ``address``.

        Raises:
            RateLimitError: no request slot within ``limiter_timeout``
            EtherscanError: transport failure, API error message or bad payload
        """
        if not self.limiter.acquire(timeout=self.limiter_timeout):
            raise RateLimitError("timed out waiting for Etherscan rate limiter")

        params = {
            "module": "contract",
            "action": "getsourcecode",
            "address": address,
            "apikey": self.api_key,
        }
        try:
            resp = self.session.get(self.base_url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            raise EtherscanError(f"etherscan request failed: {e}") from e
        except ValueError as e:
            raise EtherscanError(f"etherscan returned invalid JSON: {e}") from e

        try:
            response = EtherscanResponse.model_validate(payload)
        except ValidationError as e:
            raise EtherscanError(f"unknown result {payload!r}") from e

        result = response.result
        if isinstance(result, str):
            # e.g. "Invalid API Key", "Max rate limit reached"
            raise EtherscanError(result)
        if isinstance(result, list):
            if not result:
                raise EtherscanError("no result")
            try:
                code = SourceCode.model_validate(result[0])
            except ValidationError as e:
                raise EtherscanError(f"malformed source record: {e}") from e
            _LOG.info(
                f"etherscan fetched address={address} "
                f"contract={code.contract_name or '-'} proxy={code.is_proxy}"
            )
            return code
        raise EtherscanError(f"unknown result {payload!r}")

    def close(self) -> None:
        self.session.close()
