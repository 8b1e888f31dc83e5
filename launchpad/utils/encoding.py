"""base64url без паддинга (Web Push, VAPID, JWT)."""

from __future__ import annotations

import base64
import binascii


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Принимает base64url и обычный base64, с паддингом и без."""

    cleaned = value.strip().replace("+", "-").replace("/", "_").rstrip("=")
    padded = cleaned + "=" * (-len(cleaned) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Некорректная base64url строка: {value[:16]}...") from exc


__all__ = ["b64url_decode", "b64url_encode"]
