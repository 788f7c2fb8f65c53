"""
Contracts - typed facades over the deployed Soroban contracts.

- token: SenteToken (balances, allowances, faucet)
- vault: SenteVault (deposits, transfers, time-locked savings)
"""

from .token import SenteToken
from .vault import SenteVault

__all__ = ["SenteToken", "SenteVault"]
