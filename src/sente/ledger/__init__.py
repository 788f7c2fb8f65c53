"""
Ledger - contract invocation pipeline for Stellar / Soroban.

Build -> simulate -> assemble -> sign -> submit -> poll -> decode.

Uses httpx for Horizon REST and Soroban JSON-RPC, and stellar-sdk for
XDR envelopes and SCVal values.  No SorobanServer: endpoint I/O stays in
``rpc`` so it can be faked in tests.
"""
