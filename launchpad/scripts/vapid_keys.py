"""Генерирует пару VAPID ключей для .env (PUSH__VAPID_PRIVATE_KEY / PUSH__VAPID_PUBLIC_KEY)."""

from __future__ import annotations

from launchpad.services.push.vapid import generate_vapid_keys


def main() -> None:
    keys = generate_vapid_keys()
    print(f"PUSH__VAPID_PUBLIC_KEY={keys.public_key}")
    print(f"PUSH__VAPID_PRIVATE_KEY={keys.private_key}")


if __name__ == "__main__":
    main()
