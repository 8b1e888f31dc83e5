"""VAPID (RFC 8292): JWT ES256, которым отправитель представляется push-сервису."""

from __future__ import annotations

import time
from dataclasses import dataclass
from urllib.parse import urlsplit

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from launchpad.utils.encoding import b64url_decode, b64url_encode

VAPID_TTL_SECONDS = 12 * 60 * 60
VAPID_ALGORITHM = "ES256"


class VapidKeyError(ValueError):
    """Приватный ключ VAPID не читается как P-256."""


@dataclass(slots=True, frozen=True)
class VapidKeys:
    private_key: str
    public_key: str


def load_private_key(private_key_b64url: str) -> ec.EllipticCurvePrivateKey:
    """Принимает PKCS#8 DER или «голый» 32-байтовый скаляр в base64url."""

    try:
        raw = b64url_decode(private_key_b64url)
    except ValueError as exc:
        raise VapidKeyError(str(exc)) from exc
    try:
        if len(raw) == 32:
            key = ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())
        else:
            key = serialization.load_der_private_key(raw, password=None)
    except ValueError as exc:
        raise VapidKeyError("Некорректный приватный ключ VAPID") from exc
    if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(key.curve, ec.SECP256R1):
        raise VapidKeyError("Ключ VAPID должен быть ECDSA P-256")
    return key


def public_key_for(private_key: ec.EllipticCurvePrivateKey) -> str:
    raw = private_key.public_key().public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )
    return b64url_encode(raw)


def audience(endpoint: str) -> str:
    parts = urlsplit(endpoint)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ValueError(f"Некорректный push endpoint: {endpoint[:60]}")
    return f"{parts.scheme}://{parts.netloc}"


def sign(
    endpoint: str,
    subject: str,
    private_key_b64url: str,
    *,
    now: int | None = None,
) -> str:
    """Компактный JWT: aud = origin endpoint, exp = now + 12 часов, sub = контакт."""

    issued = int(time.time()) if now is None else now
    claims = {
        "aud": audience(endpoint),
        "exp": issued + VAPID_TTL_SECONDS,
        "sub": subject,
    }
    key = load_private_key(private_key_b64url)
    return jwt.encode(claims, key, algorithm=VAPID_ALGORITHM, headers={"typ": "JWT"})


def authorization_header(token: str, public_key: str) -> str:
    return f"vapid t={token}, k={public_key}"


def generate_vapid_keys() -> VapidKeys:
    key = ec.generate_private_key(ec.SECP256R1())
    der = key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return VapidKeys(private_key=b64url_encode(der), public_key=public_key_for(key))


__all__ = [
    "VAPID_TTL_SECONDS",
    "VapidKeyError",
    "VapidKeys",
    "audience",
    "authorization_header",
    "generate_vapid_keys",
    "load_private_key",
    "public_key_for",
    "sign",
]
