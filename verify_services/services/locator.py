"""
Content address of the metadata document referenced by compiled bytecode.

The CBOR trailer is checked for, in priority order:

    bzzr0 -> /swarm/bzzr0/<hex>
    bzzr1 -> /swarm/bzzr1/<hex>
    ipfs  -> /ipfs/<base58 multihash>
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import base58

from ..cbor import TrailerError, decode_trailer
from ..errors import MetadataReferenceMissing
from ..logging import get_logger

log = get_logger(__name__)

_SWARM_KEYS = ("bzzr0", "bzzr1")


@dataclass(frozen=True)
class ContentAddress:
    scheme: str
    value: str

    @property
    def parts(self) -> Tuple[str, ...]:
        if self.scheme == "ipfs":
            return ("ipfs", self.value)
        return ("swarm", self.scheme, self.value)

    @property
    def path(self) -> str:
        return "/" + "/".join(self.parts)


def locate(deployed_bytecode: str, *, chain: Optional[str] = None, address: Optional[str] = None) -> ContentAddress:
    """
    Raises MetadataReferenceMissing when the trailer is absent, undecodable, or
    carries none of the recognized keys.
    """
    try:
        trailer = decode_trailer(deployed_bytecode)
    except TrailerError as e:
        log.error("metadata_trailer_unreadable", loc="[STOREDATA]", chain=chain, address=address, error=str(e))
        raise MetadataReferenceMissing(chain, address) from e

    for key in _SWARM_KEYS:
        digest = trailer.get(key)
        if isinstance(digest, (bytes, bytearray)):
            return ContentAddress(key, bytes(digest).hex())
    digest = trailer.get("ipfs")
    if isinstance(digest, (bytes, bytearray)):
        return ContentAddress("ipfs", base58.b58encode(bytes(digest)).decode("ascii"))

    log.error("metadata_reference_missing", loc="[STOREDATA]", chain=chain, address=address, keys=sorted(map(str, trailer)))
    raise MetadataReferenceMissing(chain, address)


__all__ = ["ContentAddress", "locate"]
