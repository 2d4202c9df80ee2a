"""
Contract Host
Runs contract messages against a SQL database (or in memory), one transaction per message

The host supplies what a chain runtime would: block info, the sender, the
attached funds, and the all-or-nothing commit rule. Every message executes
inside `engine.begin()` (or a MemoryStorage snapshot); if the handler raises,
nothing it wrote is kept.
"""

import logging
import time
from contextlib import contextmanager

from . import contract
from .config import CHAIN_ID, CONTRACT_ADDRESS
from .entropy import BlockEntropySource
from .env import BlockInfo, Coin, Env, MessageInfo
from .errors import DiceEngineError
from .messages import parse_execute_msg, parse_instantiate_msg, parse_query_msg
from .storage import MemoryStorage, SqlStorage, setup_contract_database

logger = logging.getLogger(__name__)


NS_PER_BLOCK = 1_000_000_000


class ContractHost:
    """
    Reference host for one contract address

    Without an explicit start_height the first block height is the clock in
    whole seconds, so separate host processes never reuse a height.
    """

    def __init__(self, engine, contract_address=CONTRACT_ADDRESS, chain_id=CHAIN_ID,
                 entropy_source=None, clock=None, start_height=None):
        self.engine = engine
        self.contract_address = contract_address
        self.chain_id = chain_id
        self.entropy_source = entropy_source or BlockEntropySource()
        self.clock = clock or time.time_ns
        self.height = start_height if start_height is not None else self.clock() // NS_PER_BLOCK

    def setup(self):
        setup_contract_database(self.engine)
        return self

    def next_block(self, random=None):
        """Block info for the next transaction; height advances by one per call."""
        block = BlockInfo(height=self.height, time_ns=self.clock(), chain_id=self.chain_id, random=random)
        self.height += 1
        return block

    def _env(self, sender, funds, block):
        coins = [coin if isinstance(coin, Coin) else Coin(*coin) for coin in (funds or [])]
        return Env(
            block=block or self.next_block(),
            message=MessageInfo(sender=sender, funds=coins),
            contract_address=self.contract_address,
        )

    @contextmanager
    def _transaction(self):
        with self.engine.begin() as conn:
            yield SqlStorage(conn, self.contract_address)

    @contextmanager
    def _reader(self):
        with self.engine.connect() as conn:
            yield SqlStorage(conn, self.contract_address)

    def _run(self, label, sender, operation):
        try:
            with self._transaction() as storage:
                return operation(storage)
        except DiceEngineError as e:
            logger.warning(f"⚠️ {label} from {sender} rejected: {e.kind}: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Database error during {label} from {sender}: {e}", exc_info=True)
            raise

    def instantiate(self, sender, msg, funds=None, block=None):
        if isinstance(msg, dict):
            msg = parse_instantiate_msg(msg)
        env = self._env(sender, funds, block)
        return self._run('instantiate', sender, lambda storage: contract.instantiate(storage, env, msg))

    def execute(self, sender, msg, funds=None, block=None):
        """
        Execute one message as its own transaction

        Args:
            sender: Caller identity
            msg: Execute message variant, or its JSON dict form
            funds: Attached coins (Coin or (denom, amount) pairs)
            block: BlockInfo override (defaults to the next block)

        Returns:
            contract.Response
        """
        if isinstance(msg, dict):
            msg = parse_execute_msg(msg)
        env = self._env(sender, funds, block)
        return self._run(
            type(msg).__name__, sender,
            lambda storage: contract.execute(storage, env, msg, self.entropy_source),
        )

    def query(self, msg):
        if isinstance(msg, dict):
            msg = parse_query_msg(msg)
        with self._reader() as storage:
            return contract.query(storage, msg)


class MemoryContractHost(ContractHost):
    """In-process host over MemoryStorage; each message runs in a snapshot transaction"""

    def __init__(self, storage=None, **kwargs):
        super().__init__(None, **kwargs)
        self.storage = storage if storage is not None else MemoryStorage()

    def setup(self):
        return self

    @contextmanager
    def _transaction(self):
        with self.storage.transaction():
            yield self.storage

    @contextmanager
    def _reader(self):
        yield self.storage
