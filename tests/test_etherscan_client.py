"""Tests for the Etherscan client."""

from unittest.mock import MagicMock

import pytest
import requests

from code_retriever.clients.etherscan import EtherscanClient
from code_retriever.core.errors import EtherscanError, RateLimitError, UpstreamError
from code_retriever.core.rate_limiter import RateLimiter

ADDRESS = "0x" + "ab" * 20


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return EtherscanClient(
        api_key="KEY",
        base_url="https://api.example/api",
        limiter=RateLimiter(rate=1000, burst=1000),
        session=session,
    )


def test_get_source_code_parses_first_item(client, session):
    session.get.return_value = _response(
        {
            "status": "1",
            "message": "OK",
            "result": [{"ContractName": "Token", "SourceCode": "contract Token {}"}],
        }
    )
    code = client.get_source_code(ADDRESS)
    assert code.contract_name == "Token"
    assert code.source_code == "contract Token {}"


def test_get_source_code_sends_expected_params(client, session):
    session.get.return_value = _response({"result": [{"ContractName": "Token"}]})
    client.get_source_code(ADDRESS)
    args, kwargs = session.get.call_args
    assert args[0] == "https://api.example/api"
    assert kwargs["params"] == {
        "module": "contract",
        "action": "getsourcecode",
        "address": ADDRESS,
        "apikey": "KEY",
    }
    assert kwargs["timeout"] == 10.0


def test_string_result_is_an_error(client, session):
    session.get.return_value = _response(
        {"status": "0", "message": "NOTOK", "result": "Invalid API Key"}
    )
    with pytest.raises(EtherscanError, match="Invalid API Key"):
        client.get_source_code(ADDRESS)


def test_empty_result_is_an_error(client, session):
    session.get.return_value = _response({"status": "1", "result": []})
    with pytest.raises(EtherscanError, match="no result"):
        client.get_source_code(ADDRESS)


def test_unexpected_result_shape(client, session):
    session.get.return_value = _response({"status": "1", "result": {"odd": True}})
    with pytest.raises(EtherscanError, match="unknown result"):
        client.get_source_code(ADDRESS)


def test_transport_error_is_wrapped(client, session):
    session.get.side_effect = requests.ConnectionError("connection refused")
    with pytest.raises(UpstreamError):
        client.get_source_code(ADDRESS)


def test_invalid_json_is_wrapped(client, session):
    resp = MagicMock()
    resp.json.side_effect = ValueError("Expecting value")
    session.get.return_value = resp
    with pytest.raises(EtherscanError, match="invalid JSON"):
        client.get_source_code(ADDRESS)


def test_rate_limiter_timeout(session):
    limiter = MagicMock()
    limiter.acquire.return_value = False
    client = EtherscanClient(api_key="KEY", limiter=limiter, session=session)
    with pytest.raises(RateLimitError):
        client.get_source_code(ADDRESS)
    session.get.assert_not_called()


def test_every_call_takes_a_token(session):
    limiter = MagicMock()
    limiter.acquire.return_value = True
    session.get.return_value = _response({"result": [{"ContractName": "Token"}]})
    client = EtherscanClient(api_key="KEY", limiter=limiter, session=session)
    client.get_source_code(ADDRESS)
    client.get_source_code(ADDRESS)
    assert limiter.acquire.call_count == 2
