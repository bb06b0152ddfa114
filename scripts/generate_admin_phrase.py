#!/usr/bin/env python3
"""
Generate an administrative mnemonic phrase for the oracle runner.

This script generates:
- A BIP-39 mnemonic phrase
- The Sui address derived from it
- A .env file with the credentials the runner expects
"""

import argparse
import sys
from pathlib import Path

from mnemonic import Mnemonic

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from oracle_runner.config import DEFAULT_DERIVATION_PATH
from oracle_runner.tx.signer import Keypair

TESTNET_FULLNODE = "https://fullnode.testnet.sui.io:443"


def generate_phrase(strength: int = 128, path: str = DEFAULT_DERIVATION_PATH) -> dict:
    """
    Generate a new admin phrase and derive its address.

    Args:
        strength: Entropy in bits (128 gives 12 words, 256 gives 24)
        path: Derivation path of the signing key

    Returns:
        Dictionary with the phrase and address
    """
    phrase = Mnemonic("english").generate(strength=strength)
    keypair = Keypair.from_mnemonic(phrase, path)

    return {
        "phrase": phrase,
        "address": keypair.address,
        "derivation_path": path,
    }


def write_env_file(env_path: Path, info: dict, fullnode: str) -> None:
    env_path.write_text(
        f"ADMIN_PHRASE={info['phrase']}\n"
        f"FULLNODE={fullnode}\n"
        "MYSTENLABS_ORACLE_PACKAGE_ID=\n"
        "DEMO_APP_PACKAGE_ID=\n"
    )
    env_path.chmod(0o600)


def main():
    parser = argparse.ArgumentParser(description="Generate an admin phrase for the oracle runner")
    parser.add_argument(
        "--env-file", "-e",
        default=".env",
        help="Path of the .env file to write (default: .env)"
    )
    parser.add_argument(
        "--words", "-w",
        type=int,
        choices=[12, 24],
        default=12,
        help="Number of words in the phrase (default: 12)"
    )
    parser.add_argument(
        "--fullnode",
        default=TESTNET_FULLNODE,
        help=f"Full node URL written to the .env file (default: {TESTNET_FULLNODE})"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing .env file"
    )

    args = parser.parse_args()

    env_path = Path(args.env_file)
    if env_path.exists() and not args.force:
        print(f"⚠️  {env_path} already exists")
        print("   Use --force to overwrite")
        return

    print("🔑 Generating new admin phrase...")
    info = generate_phrase(strength=128 if args.words == 12 else 256)
    write_env_file(env_path, info, args.fullnode)

    print(f"\n✅ Credentials written to: {env_path}")
    print(f"\n📬 Address: {info['address']}")
    print(f"   Path:    {info['derivation_path']}")

    print("\n💰 To fund on testnet:")
    print("   sui client faucet --address " + info["address"])

    print("\n📝 Fill in MYSTENLABS_ORACLE_PACKAGE_ID and DEMO_APP_PACKAGE_ID before running.")
    print("\n⚠️  IMPORTANT: Keep the phrase in your .env file secret!")


if __name__ == "__main__":
    main()
