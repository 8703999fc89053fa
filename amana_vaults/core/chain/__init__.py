from amana_vaults.core.chain.Chain import Chain
from amana_vaults.core.chain.Contract import Contract
from amana_vaults.core.chain.decorators import external, nonreentrant, require_initialized
from amana_vaults.core.chain.erc20 import ERC20Ledger

__all__ = [
    "Chain",
    "Contract",
    "ERC20Ledger",
    "external",
    "nonreentrant",
    "require_initialized",
]
