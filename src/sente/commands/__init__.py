"""
Commands - CLI command implementations.

Each module holds one command or command group:
- wallet:    keygen, fund, pay
- token:     SenteToken reads and writes
- vault:     SenteVault reads and writes
- invoke:    Call any contract function
- tx:        Re-query a submitted transaction
- contracts: Show or edit the deployment record
"""
