"""
Generate a VAPID key pair for Web Push and print it as .env lines.
"""

from __future__ import annotations

import argparse
import base64

from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_keys() -> tuple[str, str]:
    """Return (public_key, private_key) in the raw base64url form browsers expect."""
    vapid = Vapid()
    vapid.generate_keys()
    public_key = vapid.public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )
    private_key = vapid.private_key.private_numbers().private_value.to_bytes(32, "big")
    return _b64url(public_key), _b64url(private_key)


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate VAPID keys for Web Push")
    parser.add_argument(
        "--env-only",
        action="store_true",
        help="Print only the .env lines",
    )
    args = parser.parse_args()

    public_key, private_key = generate_keys()
    if not args.env_only:
        print("=== VAPID Keys Generated ===\n")
        print(f"Public Key:\n{public_key}\n")
        print(f"Private Key:\n{private_key}\n")
        print("=== Add these to your .env file ===\n")
    print(f"VAPID_PUBLIC_KEY={public_key}")
    print(f"VAPID_PRIVATE_KEY={private_key}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
