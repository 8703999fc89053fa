__version__ = "0.1.0"

from amana_vaults.core import (
    Chain,
    RewardState,
    StatusDict,
    Strategy,
    Vault,
    VaultState,
)

__all__ = [
    "__version__",
    "Chain",
    "RewardState",
    "Strategy",
    "StatusDict",
    "Vault",
    "VaultState",
]
