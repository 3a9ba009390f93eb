"""
Read-through lookup of verified source: cache, then database, then Etherscan.

A database row younger than ``freshness`` is served as-is; an older one is
refetched. Proxy contracts resolve to their implementation's source.
"""

from datetime import datetime, timedelta
from typing import Callable, Tuple

from code_retriever.clients.etherscan import EtherscanClient
from code_retriever.clients.rpc import RpcClient
from code_retriever.config.settings import Settings
from code_retriever.core.cache import TTLCache
from code_retriever.core.errors import ProxyResolutionError
from code_retriever.core.logging import get_logger
from code_retriever.core.metrics import metrics
from code_retriever.core.rate_limiter import RateLimiter
from code_retriever.core.schemas import SourceCode
from code_retriever.storage.repository import ContractRepository, utcnow

_LOG = get_logger(__name__)

CACHE_TTL = timedelta(days=7)
FRESHNESS = timedelta(days=30)
MAX_PROXY_DEPTH = 5


class SourceCodeService:
    def __init__(
        self,
        cache: TTLCache[SourceCode],
        repository: ContractRepository,
        etherscan: EtherscanClient,
        rpc: RpcClient,
        cache_ttl: timedelta = CACHE_TTL,
        freshness: timedelta = FRESHNESS,
        max_proxy_depth: int = MAX_PROXY_DEPTH,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.cache = cache
        self.repository = repository
        self.etherscan = etherscan
        self.rpc = rpc
        self.cache_ttl = cache_ttl
        self.freshness = freshness
        self.max_proxy_depth = max_proxy_depth
        self._clock = clock

    def is_contract(self, address: str) -> bool:
        return self.rpc.is_contract(address)

    def get_source_code(self, address: str) -> SourceCode:
        code, _ = self._resolve(address, depth=0)
        return code

    def _resolve(self, address: str, depth: int) -> Tuple[SourceCode, float]:
        """Return the record and how many seconds it may still be cached."""
        code, remaining = self.cache.lookup_with_ttl(address)
        if remaining is not None:
            metrics.record_cache_hit()
            return code, remaining
        metrics.record_cache_miss()

        record = self.repository.get(address)
        if record is not None:
            age = self._clock() - record.updated_at
            if age < self.freshness:
                metrics.record_repository_hit()
                ttl = min(self.cache_ttl, self.freshness - age).total_seconds()
                self.cache.set(address, record.source_code, ttl)
                return record.source_code, ttl
            _LOG.info(f"stale record address={address} age_days={age.days}")

        return self._fetch_and_store(address, depth)

    def _fetch_and_store(self, address: str, depth: int) -> Tuple[SourceCode, float]:
        metrics.record_upstream_fetch()
        code = self.etherscan.get_source_code(address)

        if code.is_proxy:
            if depth >= self.max_proxy_depth:
                raise ProxyResolutionError(
                    f"proxy chain from {address} exceeds {self.max_proxy_depth} hops"
                )
            _LOG.info(f"proxy address={address} implementation={code.implementation}")
            resolved, ttl = self._resolve(code.implementation, depth + 1)
            # the proxy entry must not outlive the implementation it points at
            if ttl > 0:
                self.cache.set(address, resolved, ttl)
            return resolved, ttl

        binary_hash = self.rpc.get_code_hash(address)
        ttl = self.cache_ttl.total_seconds()
        self.cache.set(address, code, ttl)
        self.repository.upsert(address, code, binary_hash)
        return code, ttl

    def close(self) -> None:
        self.cache.stop()
        self.repository.close()
        self.etherscan.close()
        self.rpc.close()


def build_service(settings: Settings) -> SourceCodeService:
    """Wire the service and its collaborators from ``Settings``."""
    limiter = RateLimiter(rate=settings.rate_limit_per_second, burst=settings.rate_limit_burst)
    return SourceCodeService(
        cache=TTLCache(
            sweep_interval=settings.sweep_interval_seconds,
            clock_interval=settings.clock_interval_seconds,
        ),
        repository=ContractRepository(settings.dsn),
        etherscan=EtherscanClient(
            api_key=settings.api_key,
            base_url=settings.etherscan_url,
            limiter=limiter,
            timeout=settings.request_timeout,
        ),
        rpc=RpcClient(settings.rpc_url, timeout=settings.request_timeout),
        cache_ttl=timedelta(days=settings.cache_ttl_days),
        freshness=timedelta(days=settings.freshness_days),
    )
