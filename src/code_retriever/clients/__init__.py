"""Upstream clients: Etherscan source API and Ethereum JSON-RPC."""

from code_retriever.clients.etherscan import EtherscanClient
from code_retriever.clients.rpc import RpcClient

__all__ = ["EtherscanClient", "RpcClient"]
