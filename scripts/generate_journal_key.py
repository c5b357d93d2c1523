#!/usr/bin/env python3
"""
Generate the key pair a registry signs its journal with.

Private key: <dir>/journal.pem        (pass to `trackreg --key`)
Public key:  <dir>/journal.public.pem (pass to `trackreg journal --verify`)
"""

import argparse
import os
import sys
from pathlib import Path

# Add trackreg to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from trackreg.journal import generate_keypair


def main():
    parser = argparse.ArgumentParser(description="Generate a journal signing key pair")
    parser.add_argument("--dir", default=str(Path.home() / ".trackreg" / "keys"),
                        help="Directory to write the keys to")
    parser.add_argument("--force", action="store_true", help="Overwrite existing keys")
    args = parser.parse_args()

    keys_dir = Path(args.dir)
    private_key_path = keys_dir / "journal.pem"
    public_key_path = keys_dir / "journal.public.pem"

    if private_key_path.exists() and not args.force:
        print(f"Private key already exists: {private_key_path}")
        print("Use --force to regenerate.")
        sys.exit(1)

    private_pem, public_pem = generate_keypair()

    keys_dir.mkdir(parents=True, exist_ok=True)
    private_key_path.write_bytes(private_pem)
    os.chmod(private_key_path, 0o600)  # Owner read/write only
    public_key_path.write_bytes(public_pem)

    print(f"Private key saved: {private_key_path}")
    print(f"  Mode: 600 (owner read/write only)")
    print(f"Public key saved: {public_key_path}")


if __name__ == "__main__":
    main()
