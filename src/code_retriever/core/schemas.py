"""
Pydantic models for the Etherscan payload, the stored row and the API output.
Why: Etherscan answers in PascalCase while we store and serve camelCase;
one model accepts both and always dumps camelCase.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _field(upstream: str, served: str) -> Any:
    return Field(
        default="",
        validation_alias=AliasChoices(upstream, served),
        serialization_alias=served,
    )


class SourceCode(BaseModel):
    """One item of the ``getsourcecode`` result array."""

    # frozen: cached instances are shared between requests
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    source_code: str = _field("SourceCode", "sourceCode")
    abi: str = _field("ABI", "ABI")
    contract_name: str = _field("ContractName", "contractName")
    compiler_version: str = _field("CompilerVersion", "compilerVersion")
    optimization_used: str = _field("OptimizationUsed", "optimizationUsed")
    runs: str = _field("Runs", "runs")
    constructor_arguments: str = _field("ConstructorArguments", "constructorArguments")
    evm_version: str = _field("EVMVersion", "EVMVersion")
    library: str = _field("Library", "library")
    license_type: str = _field("LicenseType", "licenseType")
    proxy: str = _field("Proxy", "proxy")
    implementation: str = _field("Implementation", "implementation")
    swarm_source: str = _field("SwarmSource", "swarmSource")

    @property
    def is_proxy(self) -> bool:
        return self.proxy == "1" and self.implementation != ""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class ContractRecord(BaseModel):
    """A row of the ``code`` table."""

    address: str = Field(..., max_length=42)
    contract_name: str = ""
    source_code: SourceCode
    binary_hash: str = Field("", max_length=66)
    created_at: datetime
    updated_at: datetime


class EtherscanResponse(BaseModel):
    status: str = ""
    message: str = ""
    result: Any = None
