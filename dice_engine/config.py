"""
Dice Engine Configuration
Runtime parameters read from the environment and an optional .env file
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///dice_engine.db")
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Contract identity on the host
CONTRACT_ADDRESS = os.getenv("CONTRACT_ADDRESS", "dice-engine")
CHAIN_ID = os.getenv("CHAIN_ID", "dice-local-1")

# Defaults applied at instantiation when the message leaves them out
DEFAULT_DENOM = os.getenv("DEFAULT_DENOM", "ucoin")
DEFAULT_OUTCOME_LOW = 1      # six-sided die
DEFAULT_OUTCOME_HIGH = 6

# Entropy limits
MAX_SALT_LENGTH = int(os.getenv("MAX_SALT_LENGTH", "256"))
MAX_ENTROPY_LENGTH = 4096

# Integer widths
U64_MAX = 2 ** 64 - 1
U128_MAX = 2 ** 128 - 1
I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1

# Persisted record layout version
STATE_VERSION = 1

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE") or None
