"""
Wallet - key material, external signers and the connected session.

- keys:    local ed25519 secret seed in ~/.sente/.env
- signer:  Signer protocol, KeypairSigner, BridgeSigner and the SignerGateway
- session: WalletSession state machine and change subscriptions
"""
