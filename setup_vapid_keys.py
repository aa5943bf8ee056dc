#!/usr/bin/env python3
"""
VAPID Key Setup Tool

Generates the VAPID key pair the reminder scheduler signs Web Push
messages with, and validates a configured pair.

Usage:
    python3 setup_vapid_keys.py              # Generate a new key pair
    python3 setup_vapid_keys.py --validate   # Validate VAPID_* environment variables
"""

import argparse
import os
import sys
from typing import Tuple

from cryptography.hazmat.primitives import serialization
from py_vapid import Vapid
from py_vapid.utils import b64urlencode


DEFAULT_SUBJECT = "mailto:your-email@example.com"


class VapidKeyManager:
    """Generates and validates VAPID key pairs."""

    PUBLIC_ENV = "VAPID_PUBLIC_KEY"
    PRIVATE_ENV = "VAPID_PRIVATE_KEY"
    SUBJECT_ENV = "VAPID_SUBJECT"

    def generate_keys(self) -> Tuple[str, str]:
        """
        Generate a new P-256 key pair.

        Returns:
            tuple: (public_key, private_key), both Base64url without padding.
                   The public key is the uncompressed point browsers expect
                   as applicationServerKey.
        """
        vapid = Vapid()
        vapid.generate_keys()
        return self.public_key_of(vapid), self.private_key_of(vapid)

    @staticmethod
    def public_key_of(vapid: Vapid) -> str:
        raw = vapid.public_key.public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )
        return b64urlencode(raw)

    @staticmethod
    def private_key_of(vapid: Vapid) -> str:
        raw = vapid.private_key.private_numbers().private_value.to_bytes(32, "big")
        return b64urlencode(raw)

    def validate_pair(self, public_key: str, private_key: str) -> Tuple[bool, str]:
        """
        Check that the private key parses and matches the public key.

        Returns:
            tuple: (is_valid, error_message)
        """
        if not public_key or not private_key:
            return False, "Both public and private keys are required"

        try:
            vapid = Vapid.from_string(private_key)
        except Exception as e:
            return False, f"Invalid private key: {e}"

        if self.public_key_of(vapid) != public_key.rstrip("="):
            return False, "Public key does not match private key"

        return True, ""

    def format_env(self, public_key: str, private_key: str, subject: str = DEFAULT_SUBJECT) -> str:
        """Render the key pair as .env lines."""
        return "\n".join([
            f"{self.PUBLIC_ENV}={public_key}",
            f"{self.PRIVATE_ENV}={private_key}",
            f"{self.SUBJECT_ENV}={subject}",
        ])

    def generate(self) -> None:
        """Generate a key pair and print it in .env format."""
        public_key, private_key = self.generate_keys()

        print("\n🔑 VAPID Keys Generated!\n")
        print("Add these to your .env file:\n")
        print(self.format_env(public_key, private_key))
        print("\n⚠️  Keep the private key SECRET. The public key goes in the frontend too.")
        print("⚠️  Replacing keys invalidates every existing browser subscription.\n")

    def validate_existing(self) -> None:
        """Validate the key pair from the environment; exit 1 if invalid."""
        public_key = os.environ.get(self.PUBLIC_ENV, "")
        private_key = os.environ.get(self.PRIVATE_ENV, "")

        is_valid, error = self.validate_pair(public_key, private_key)
        if not is_valid:
            print(f"❌ VAPID key validation failed: {error}")
            print("\nGenerate a new pair with: python3 setup_vapid_keys.py")
            sys.exit(1)

        subject = os.environ.get(self.SUBJECT_ENV, "")
        print("✓ VAPID key pair is valid")
        print(f"\nPublic key preview: {public_key[:20]}...")
        if not subject:
            print(f"Note: {self.SUBJECT_ENV} not set, the scheduler will use its default contact.")


def main():
    """Main entry point for the VAPID key setup tool."""
    parser = argparse.ArgumentParser(
        description="Daylock VAPID Key Setup Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 setup_vapid_keys.py              # Generate a new key pair
  python3 setup_vapid_keys.py --validate   # Validate VAPID_* environment variables
        """
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configured key pair instead of generating a new one"
    )
    args = parser.parse_args()

    manager = VapidKeyManager()
    if args.validate:
        manager.validate_existing()
    else:
        manager.generate()


if __name__ == "__main__":
    main()
