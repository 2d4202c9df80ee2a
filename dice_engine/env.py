"""
Execution Environment
Block, message and funds information the host hands to every entrypoint
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: int


@dataclass(frozen=True)
class BlockInfo:
    height: int
    time_ns: int
    chain_id: str
    random: Optional[bytes] = None   # host random beacon, if the chain has one


@dataclass(frozen=True)
class MessageInfo:
    sender: str
    funds: List[Coin] = field(default_factory=list)


@dataclass(frozen=True)
class Env:
    block: BlockInfo
    message: MessageInfo
    contract_address: str
