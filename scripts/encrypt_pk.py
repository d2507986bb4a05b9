#!/usr/bin/env python3
"""
Encrypt a private key for the `pk` request field.

Usage:
    python encrypt_pk.py --generate-key
    python encrypt_pk.py --private-key <KEY> [--key <FERNET_KEY>]

Without --key, HTLC_PK_ENCRYPTION_KEY is used.
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sdk.errors import KeyDecryptionError  # noqa: E402
from sdk.security import encrypt_private_key, generate_key  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Encrypt a private key for htlc-bridge")
    parser.add_argument("--generate-key", action="store_true", help="Print a new encryption key and exit")
    parser.add_argument("--private-key", "-k", help="Private key to encrypt")
    parser.add_argument("--key", help="Fernet key (default: HTLC_PK_ENCRYPTION_KEY)")
    args = parser.parse_args()

    if args.generate_key:
        print(generate_key())
        return

    if not args.private_key:
        parser.error("--private-key is required")

    try:
        print(encrypt_private_key(args.private_key, key=args.key))
    except KeyDecryptionError as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
