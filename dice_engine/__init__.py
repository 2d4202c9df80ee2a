"""
Dice Engine Package
Provably fair single-die wagering contract with an atomic house ledger
"""

__version__ = "1.0.0"

# Export main components
from .config_store import Config, ConfigStore
from .contract import Response, execute, instantiate, query
from .entropy import BlockEntropySource, FixedEntropySource, derive_seed
from .host import ContractHost, MemoryContractHost
from .outcome import generate_outcome, generate_outcomes
from .rounds import RoundResult, RoundStateMachine
from .storage import MemoryStorage, SqlStorage, setup_contract_database

__all__ = [
    'Config',
    'ConfigStore',
    'Response',
    'execute',
    'instantiate',
    'query',
    'BlockEntropySource',
    'FixedEntropySource',
    'derive_seed',
    'ContractHost',
    'MemoryContractHost',
    'generate_outcome',
    'generate_outcomes',
    'RoundResult',
    'RoundStateMachine',
    'MemoryStorage',
    'SqlStorage',
    'setup_contract_database',
]
