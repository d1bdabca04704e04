from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken


ENC_ALG = "fernet"
ENC_VERSION = 1


class DecryptionError(ValueError):
    pass


def load_key(key_env: str, key_path: str | Path = "") -> Optional[bytes]:
    """Fernet key from ``key_env`` or, failing that, from ``key_path``."""
    from_env = os.getenv(key_env, "").strip() if key_env else ""
    if from_env:
        return from_env.encode("ascii")
    if not key_path:
        return None
    try:
        from_file = Path(key_path).read_bytes().strip()
    except OSError as exc:
        raise ValueError(f"journal key file unreadable: {key_path}: {exc}") from exc
    return from_file or None


def generate_key() -> bytes:
    return Fernet.generate_key()


def validate_key(key: bytes) -> None:
    Fernet(key)


def encrypt_text(plain_text: str, key: bytes) -> str:
    f = Fernet(key)
    return f.encrypt(plain_text.encode("utf-8")).decode("ascii")


def decrypt_text(token: str, key: bytes) -> str:
    f = Fernet(key)
    try:
        return f.decrypt(token.encode("ascii")).decode("utf-8")
    except InvalidToken as exc:
        raise DecryptionError("journal line could not be decrypted") from exc


def wrap_encrypted(token: str) -> str:
    return json.dumps(
        {"__enc__": token, "__alg__": ENC_ALG, "__v__": ENC_VERSION},
        separators=(",", ":"),
    )


def unwrap_encrypted(payload: Dict[str, Any]) -> Optional[str]:
    token = payload.get("__enc__")
    if not isinstance(token, str):
        return None
    if payload.get("__alg__") != ENC_ALG:
        raise DecryptionError(f"unsupported journal cipher: {payload.get('__alg__')}")
    return token
