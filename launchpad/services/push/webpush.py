"""Шифрование Web Push сообщений (RFC 8291, content-encoding aes128gcm).

Схема собрана из примитивов: ECDH P-256 -> HKDF-SHA256 (RFC 5869) -> AES-128-GCM.
Соль и эфемерная пара ключей генерируются заново на каждое сообщение и
нигде не сохраняются: их повторное использование ломает конфиденциальность.

Формат тела (одна запись)::

    salt(16) || rs(4, big-endian) || idlen(1) || keyid(65) || ciphertext+tag
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import struct
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from launchpad.utils.encoding import b64url_decode

RECORD_SIZE = 4096
SALT_LENGTH = 16
KEY_LENGTH = 16
NONCE_LENGTH = 12
TAG_LENGTH = 16
PADDING_DELIMITER = b"\x02"
HEADER_LENGTH = SALT_LENGTH + 4 + 1

WEBPUSH_INFO = b"WebPush: info\x00"
CEK_INFO = b"Content-Encoding: aes128gcm\x00"
NONCE_INFO = b"Content-Encoding: nonce\x00"

DEFAULT_TITLE = "Price Alert"
DEFAULT_BODY = "Check your portfolio!"
DEFAULT_URL = "/portfolio"


class PushEncryptionError(ValueError):
    """Некорректные ключи подписчика или повреждённое тело сообщения."""


@dataclass(slots=True)
class PushMessage:
    """Полезная нагрузка уведомления, как её читает service worker."""

    title: str
    body: str
    url: str | None = None
    token_mint: str | None = None

    def to_json(self) -> str:
        data: dict[str, Any] = {"title": self.title, "body": self.body}
        if self.url is not None:
            data["url"] = self.url
        if self.token_mint is not None:
            data["tokenMint"] = self.token_mint
        return json.dumps(data, separators=(",", ":"))


def hkdf_extract(salt: bytes, ikm: bytes) -> bytes:
    return hmac.new(salt, ikm, hashlib.sha256).digest()


def hkdf_expand(prk: bytes, info: bytes, length: int) -> bytes:
    """T(i) = HMAC(PRK, T(i-1) || info || i), склейка до нужной длины."""

    if length > 255 * hashlib.sha256().digest_size:
        raise ValueError("HKDF-Expand: слишком большая длина")
    output = b""
    block = b""
    counter = 1
    while len(output) < length:
        block = hmac.new(prk, block + info + bytes([counter]), hashlib.sha256).digest()
        output += block
        counter += 1
    return output[:length]


def _public_bytes(key: ec.EllipticCurvePublicKey) -> bytes:
    return key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)


def _load_public_key(raw: bytes) -> ec.EllipticCurvePublicKey:
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw)
    except ValueError as exc:
        raise PushEncryptionError("Некорректный ключ p256dh подписчика") from exc


def _derive(
    shared_secret: bytes,
    auth_secret: bytes,
    receiver_public: bytes,
    sender_public: bytes,
    salt: bytes,
) -> tuple[bytes, bytes]:
    prk_auth = hkdf_extract(auth_secret, shared_secret)
    ikm = hkdf_expand(prk_auth, WEBPUSH_INFO + receiver_public + sender_public, 32)
    prk = hkdf_extract(salt, ikm)
    return hkdf_expand(prk, CEK_INFO, KEY_LENGTH), hkdf_expand(prk, NONCE_INFO, NONCE_LENGTH)


def encrypt(
    plaintext: bytes | str,
    p256dh: str,
    auth: str,
    *,
    record_size: int = RECORD_SIZE,
) -> bytes:
    """Шифрует payload для подписки (ключи подписчика в base64url)."""

    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    try:
        receiver_public = b64url_decode(p256dh)
        auth_secret = b64url_decode(auth)
    except ValueError as exc:
        raise PushEncryptionError(str(exc)) from exc
    if not auth_secret:
        raise PushEncryptionError("Пустой auth secret подписчика")
    if len(plaintext) + len(PADDING_DELIMITER) + TAG_LENGTH > record_size:
        raise PushEncryptionError(
            f"Payload {len(plaintext)} байт не помещается в запись {record_size}"
        )
    subscriber_key = _load_public_key(receiver_public)

    salt = secrets.token_bytes(SALT_LENGTH)
    ephemeral = ec.generate_private_key(ec.SECP256R1())
    sender_public = _public_bytes(ephemeral.public_key())
    shared_secret = ephemeral.exchange(ec.ECDH(), subscriber_key)

    key, nonce = _derive(shared_secret, auth_secret, receiver_public, sender_public, salt)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext + PADDING_DELIMITER, None)

    header = salt + struct.pack("!IB", record_size, len(sender_public)) + sender_public
    return header + ciphertext


def decrypt(body: bytes, private_key: ec.EllipticCurvePrivateKey, auth_secret: bytes) -> bytes:
    """Обратная операция на стороне получателя (браузер / тесты)."""

    if len(body) < HEADER_LENGTH:
        raise PushEncryptionError("Тело короче заголовка aes128gcm")
    salt = body[:SALT_LENGTH]
    record_size, key_id_length = struct.unpack("!IB", body[SALT_LENGTH:HEADER_LENGTH])
    key_id = body[HEADER_LENGTH:HEADER_LENGTH + key_id_length]
    ciphertext = body[HEADER_LENGTH + key_id_length:]
    if len(key_id) != key_id_length or len(ciphertext) > record_size:
        raise PushEncryptionError("Повреждённый заголовок aes128gcm")

    sender_key = _load_public_key(key_id)
    receiver_public = _public_bytes(private_key.public_key())
    shared_secret = private_key.exchange(ec.ECDH(), sender_key)
    key, nonce = _derive(shared_secret, auth_secret, receiver_public, key_id, salt)
    try:
        padded = AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise PushEncryptionError("Не удалось расшифровать сообщение") from exc

    stripped = padded.rstrip(b"\x00")
    if not stripped.endswith(PADDING_DELIMITER):
        raise PushEncryptionError("Нет разделителя последней записи")
    return stripped[:-1]


def parse_notification(payload: bytes | str | None) -> PushMessage:
    """JSON {title, body, url?, tokenMint?}; если это не JSON — текст уходит в body."""

    message = PushMessage(title=DEFAULT_TITLE, body=DEFAULT_BODY, url=DEFAULT_URL)
    if not payload:
        return message
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        message.body = text
        return message
    if not isinstance(data, dict):
        message.body = text
        return message
    message.title = data.get("title") or message.title
    message.body = data.get("body") or data.get("message") or message.body
    message.url = data.get("url") or DEFAULT_URL
    message.token_mint = data.get("tokenMint")
    return message


__all__ = [
    "PushEncryptionError",
    "PushMessage",
    "RECORD_SIZE",
    "decrypt",
    "encrypt",
    "hkdf_expand",
    "hkdf_extract",
    "parse_notification",
]
