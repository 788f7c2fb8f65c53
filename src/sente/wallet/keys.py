"""
Stellar ed25519 key management for the local (CLI / deployer) signer.

The secret is stored in ~/.sente/.env as STELLAR_SECRET_KEY (S... strkey).
Browser-wallet users never hit this module: their keys stay in the
external signer.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from stellar_sdk import Keypair, StrKey

from ..config import SENTE_ENV

SECRET_ENV_KEY = "STELLAR_SECRET_KEY"


def generate_keypair() -> tuple[str, str]:
    """
    Generate a new ed25519 keypair.

    Returns:
        Tuple of (secret_seed, public_key)
        - secret_seed: S... strkey (56 chars)
        - public_key: G... strkey (56 chars)
    """
    keypair = Keypair.random()
    return keypair.secret, keypair.public_key


def save_secret_key(secret: str, env_path: Optional[Path] = None) -> Path:
    """
    Save the secret seed to the .env file, preserving other entries.

    Args:
        secret: S... strkey secret seed
        env_path: Path to .env file (default: ~/.sente/.env)

    Returns:
        Path to the saved .env file
    """
    if not StrKey.is_valid_ed25519_secret_seed(secret):
        raise ValueError("Not a valid Stellar secret seed")

    env_path = env_path or SENTE_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                existing[k.strip()] = v.strip()

    existing[SECRET_ENV_KEY] = secret

    lines = [f"{k}={v}" for k, v in existing.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_secret_key(env_path: Optional[Path] = None) -> str:
    """
    Load the secret seed from the .env file or environment.

    Raises:
        ValueError: If STELLAR_SECRET_KEY is missing or malformed
    """
    env_path = env_path or SENTE_ENV

    if env_path.exists():
        load_dotenv(env_path, override=True)

    secret = os.environ.get(SECRET_ENV_KEY)
    if not secret:
        raise ValueError(
            f"{SECRET_ENV_KEY} not found. Run 'sente keygen' or set "
            f"{SECRET_ENV_KEY} in {env_path}"
        )
    if not StrKey.is_valid_ed25519_secret_seed(secret.strip()):
        raise ValueError(f"{SECRET_ENV_KEY} is not a valid Stellar secret seed")
    return secret.strip()


def get_keypair(secret: Optional[str] = None) -> Keypair:
    if secret is None:
        secret = load_secret_key()
    return Keypair.from_secret(secret)


def get_public_key(secret: Optional[str] = None) -> str:
    return get_keypair(secret).public_key
