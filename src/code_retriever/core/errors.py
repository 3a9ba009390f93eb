"""Exception hierarchy shared by clients, storage and the HTTP layer."""


class RetrieverError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigError(RetrieverError):
    pass


class StorageError(RetrieverError):
    pass


class NotAContractError(RetrieverError):
    """No bytecode at the address (EOA or self-destructed contract)."""


class UpstreamError(RetrieverError):
    """Etherscan or the RPC node failed or answered something unusable."""


class EtherscanError(UpstreamError):
    pass


class RateLimitError(UpstreamError):
    pass


class RpcError(UpstreamError):
    pass


class ProxyResolutionError(UpstreamError):
    pass
