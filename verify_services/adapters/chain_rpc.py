"""
JSON-RPC access to EVM chains for reading deployed bytecode.

This adapter provides:
- a static table of supported chains (name, chain id, hosted RPC template)
- `HttpChainReader`: a retrying async JSON-RPC client over httpx that issues
  `eth_getCode(address, "latest")`
- `read_code()`: one bounded read whose outcome is an explicit `CodeRead`
  value (success with code, or failure with an error string) instead of an
  exception, so callers branch on it
- `ChainRegistry`: an immutable chain-id -> reader mapping built once at
  startup and shared read-only by every pipeline run

Notes
-----
* Chains resolve by name or numeric id: "mainnet" and "1" are the same chain.
* All hex data is treated as lowercase 0x-prefixed strings.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol, runtime_checkable

import httpx

from ..errors import InputValidationError, RpcError
from ..logging import get_logger

log = get_logger(__name__)

HexStr = str


# ----------------------------- Chains ---------------------------------------


@dataclass(frozen=True)
class ChainSpec:
    name: str
    chain_id: int
    rpc_template: Optional[str] = None

    @property
    def key(self) -> str:
        return str(self.chain_id)

    def rpc_url(self, infura_id: Optional[str]) -> Optional[str]:
        if not self.rpc_template or not infura_id:
            return None
        return self.rpc_template.replace("{INFURA_ID}", infura_id)


_INFURA = "https://{name}.infura.io/v3/{{INFURA_ID}}"

CHAINS: Mapping[str, ChainSpec] = MappingProxyType(
    {
        spec.key: spec
        for spec in (
            ChainSpec("mainnet", 1, _INFURA.format(name="mainnet")),
            ChainSpec("ropsten", 3, _INFURA.format(name="ropsten")),
            ChainSpec("rinkeby", 4, _INFURA.format(name="rinkeby")),
            ChainSpec("goerli", 5, _INFURA.format(name="goerli")),
            ChainSpec("kovan", 42, _INFURA.format(name="kovan")),
            ChainSpec("localhost", 1337, None),
        )
    }
)


def resolve_chain(chain: str | int) -> ChainSpec:
    """
    Look up a chain by name or id. Raises InputValidationError for unknown chains.
    """
    key = str(chain).strip().lower()
    if key in CHAINS:
        return CHAINS[key]
    for spec in CHAINS.values():
        if spec.name == key:
            return spec
    raise InputValidationError(f"Unsupported chain: {chain}", details={"loc": "[CHAIN]", "chain": str(chain)})


# ----------------------------- Reader ---------------------------------------


@runtime_checkable
class ChainReader(Protocol):
    async def get_code(self, address: str) -> HexStr:
        """Return the deployed code at `address` as 0x-hex. Raises on transport failure."""
        ...


@dataclass(frozen=True)
class CodeRead:
    address: str
    code: Optional[HexStr] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.code is not None


async def read_code(reader: ChainReader, address: str, *, timeout_s: Optional[float] = None) -> CodeRead:
    """
    Read code for one address. Any failure of the read (transport, malformed
    reply, timeout) becomes a failed CodeRead; cancellation still propagates.
    """
    try:
        if timeout_s is None:
            code = await reader.get_code(address)
        else:
            code = await asyncio.wait_for(reader.get_code(address), timeout=timeout_s)
    except asyncio.TimeoutError:
        return CodeRead(address=address, error=f"timed out after {timeout_s}s")
    except Exception as exc:
        return CodeRead(address=address, error=f"{type(exc).__name__}: {exc}")
    if not isinstance(code, str):
        return CodeRead(address=address, error=f"unexpected eth_getCode result: {code!r}")
    return CodeRead(address=address, code=code.lower())


@dataclass
class RpcConfig:
    url: str
    timeout_s: float = 10.0
    max_retries: int = 2
    backoff_base_s: float = 0.25
    headers: Optional[Dict[str, str]] = None


def _should_retry(status: Optional[int]) -> bool:
    return status in (429, 502, 503, 504)


class HttpChainReader:
    """
    Minimal async JSON-RPC client for one EVM chain.
    """

    def __init__(self, config: RpcConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._cfg = config
        self._id = 0
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def url(self) -> str:
        return self._cfg.url

    # ---------- lifecycle ----------

    async def start(self) -> None:
        if self._client is None:
            headers = {"content-type": "application/json", "accept": "application/json"}
            headers.update(self._cfg.headers or {})
            self._client = httpx.AsyncClient(
                timeout=self._cfg.timeout_s,
                headers=headers,
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpChainReader":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- core transport ----------

    async def _call(self, method: str, params: Any | None = None) -> Any:
        """
        Perform a single JSON-RPC call with retries on transient failures.
        """
        if self._client is None:
            await self.start()
        assert self._client is not None

        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params or []}

        attempt = 0
        while True:
            attempt += 1
            try:
                resp = await self._client.post(self._cfg.url, json=payload)
                if resp.status_code != 200:
                    if _should_retry(resp.status_code):
                        raise httpx.TransportError(f"HTTP {resp.status_code}")
                    raise RpcError(
                        f"HTTP {resp.status_code}: {resp.text[:256]!r}",
                        details={"method": method, "url": self._cfg.url},
                    )
                data = json.loads(resp.content)
                if not isinstance(data, dict):
                    raise RpcError(
                        f"Malformed JSON-RPC response: {type(data).__name__}",
                        details={"method": method, "url": self._cfg.url},
                    )
                err = data.get("error")
                if err is not None and not isinstance(err, dict):
                    raise RpcError(f"RPC error: {err!r}", details={"method": method})
                if err is not None:
                    raise RpcError(
                        f"RPC error {err.get('code', -32000)}: {err.get('message', 'Unknown error')}",
                        details={"method": method, "data": err.get("data")},
                    )
                return data.get("result")
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt > self._cfg.max_retries:
                    raise RpcError(
                        f"RPC call failed after {attempt} attempts: {exc}",
                        details={"method": method, "url": self._cfg.url},
                    ) from exc
                await asyncio.sleep(self._cfg.backoff_base_s * (2 ** (attempt - 1)))

    # ---------- typed methods ----------

    async def get_code(self, address: str) -> HexStr:
        return await self._call("eth_getCode", [address, "latest"])


# ----------------------------- Registry -------------------------------------


class ChainRegistry(Mapping[str, ChainReader]):
    """
    Read-only chain-id -> ChainReader mapping. Lookups accept names or ids.
    """

    def __init__(self, readers: Optional[Mapping[str | int, ChainReader]] = None):
        resolved: Dict[str, ChainReader] = {}
        for chain, reader in (readers or {}).items():
            resolved[resolve_chain(chain).key] = reader
        self._readers: Mapping[str, ChainReader] = MappingProxyType(resolved)

    def __getitem__(self, chain: str) -> ChainReader:
        return self._readers[resolve_chain(chain).key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._readers)

    def __len__(self) -> int:
        return len(self._readers)

    def reader_for(self, chain: str) -> ChainReader:
        """Reader for `chain`; InputValidationError when the chain has none configured."""
        spec = resolve_chain(chain)
        try:
            return self._readers[spec.key]
        except KeyError:
            raise InputValidationError(
                f"No RPC endpoint configured for chain {spec.name} ({spec.chain_id})",
                details={"loc": "[CHAIN]", "chain": str(chain)},
            ) from None

    async def aclose(self) -> None:
        for reader in self._readers.values():
            close = getattr(reader, "close", None)
            if close is not None:
                await close()


def build_registry(settings: Any) -> ChainRegistry:
    """
    Build readers for every configured chain that has a usable URL. An explicit
    RPC_URLS entry wins over the Infura template; chains with neither are
    skipped with a warning.
    """
    if getattr(settings, "offline", False):
        return ChainRegistry()

    overrides = {resolve_chain(k).key: url for k, url in (settings.rpc_urls or {}).items()}
    readers: Dict[str, ChainReader] = {}
    names = list(settings.chains)
    if settings.local_chain_url:
        names.append("localhost")
        overrides.setdefault(resolve_chain("localhost").key, settings.local_chain_url)

    for name in names:
        spec = resolve_chain(name)
        url = overrides.get(spec.key) or spec.rpc_url(settings.infura_id)
        if not url:
            log.warning("chain_skipped", loc="[CHAIN]", chain=spec.name, reason="no RPC URL configured")
            continue
        readers[spec.key] = HttpChainReader(
            RpcConfig(url=url, timeout_s=settings.rpc_timeout_s, max_retries=settings.rpc_max_retries)
        )
    log.info("chains_initialized", loc="[CHAIN]", chains=sorted(readers))
    return ChainRegistry(readers)


__all__ = [
    "CHAINS",
    "ChainSpec",
    "resolve_chain",
    "ChainReader",
    "CodeRead",
    "read_code",
    "RpcConfig",
    "HttpChainReader",
    "ChainRegistry",
    "build_registry",
]
