#!/usr/bin/env python3
"""
Canary Chain Command Line Interface

Usage:
    canarychain keygen --kid <id> --private <file> --public <file>
    canarychain seal --key <file> (--deadline <ts> | --days <n>) [--previous <proof>] -o <file>
    canarychain hash --file <proof>
    canarychain verify --key <public> (--store-dir <dir> | <proof> ...)
    canarychain submit --server <url> --proof <file>
    canarychain fetch --server <url> [--key <public>] [-o <file>]
"""

import argparse
import json
import sys
from datetime import datetime, timedelta, timezone

import requests

from .hashing import document_hash
from .signing import (
    ProofError,
    generate_key_pair,
    load_signing_key,
    load_trusted_key,
    open_proof,
    save_signing_key,
    save_trusted_key,
    seal_canary,
)
from .statement import create_canary, format_timestamp, parse_timestamp
from .store import DirectoryProofStore, StoreError
from .verifier import verify_chain

REQUEST_TIMEOUT = 30


def read_text(path: str) -> str:
    """Read a proof exactly as stored; no newline translation."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_text(text: str, path: str):
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def cmd_keygen(args):
    """Generate an Ed25519 signing key and its public half."""
    key = generate_key_pair(args.kid)
    save_signing_key(key, args.private)
    save_trusted_key(key.trusted_key(), args.public)
    print(f"Signing key saved to: {args.private}")
    print(f"Public key saved to: {args.public}")
    return 0


def cmd_seal(args):
    """Author and sign a new canary."""
    key = load_signing_key(args.key)

    if args.deadline:
        deadline = parse_timestamp(args.deadline)
    else:
        now = datetime.now(timezone.utc).replace(microsecond=0)
        deadline = now + timedelta(days=args.days)

    previous_hash = ""
    if args.previous:
        previous_hash = document_hash(read_text(args.previous))
    elif args.previous_hash:
        previous_hash = args.previous_hash

    canary = create_canary(
        deadline=deadline,
        previous_hash=previous_hash,
        author=args.author or "",
        description=args.description or "",
    )
    proof = seal_canary(canary, key)

    if args.output:
        write_text(proof, args.output)
        print(f"Proof saved to: {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(proof)
    print(f"Deadline: {format_timestamp(deadline)}", file=sys.stderr)
    return 0


def cmd_hash(args):
    """Print the linkage hash of a proof file."""
    print(document_hash(read_text(args.file)))
    return 0


def cmd_verify(args):
    """Verify a chain of proofs, oldest first."""
    key = load_trusted_key(args.key)

    if args.store_dir:
        try:
            documents = DirectoryProofStore(args.store_dir).documents()
        except StoreError as e:
            print(f"✗ {e}", file=sys.stderr)
            return 1
    else:
        documents = [read_text(p) for p in args.proofs]

    result = verify_chain(documents, key)
    if result.is_valid():
        print(f"✓ VALID chain of {result.length} canaries")
        if result.tip is not None:
            print(f"  Latest deadline: {format_timestamp(result.tip.deadline)}")
        return 0

    print(f"✗ INVALID at position {result.index}: {result.reason}")
    if result.details:
        print(json.dumps(result.details, indent=2))
    return 1


def cmd_submit(args):
    """Submit a proof to a canary server."""
    proof = read_text(args.proof)
    url = args.server.rstrip("/") + "/submit"
    try:
        resp = requests.post(url, json={"proof": proof}, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        print(f"✗ Request failed: {e}", file=sys.stderr)
        return 2

    if resp.status_code == 204:
        print("✓ Canary accepted")
        return 0

    try:
        body = resp.json()
        reason = body.get("reason", "UNKNOWN")
        message = body.get("message", "")
    except ValueError:
        reason, message = "UNKNOWN", resp.text
    print(f"✗ {resp.status_code} {reason}: {message}", file=sys.stderr)
    return 1


def cmd_fetch(args):
    """Fetch the latest proof from a canary server."""
    url = args.server.rstrip("/") + "/latest"
    try:
        resp = requests.get(url, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as e:
        print(f"✗ Request failed: {e}", file=sys.stderr)
        return 2

    if resp.status_code == 204:
        print("No canary published yet", file=sys.stderr)
        return 1

    proof = resp.content.decode("utf-8")
    if args.key:
        try:
            statement = open_proof(load_trusted_key(args.key), proof)
        except ProofError as e:
            print(f"✗ {e}", file=sys.stderr)
            return 1
        print(f"✓ Signature valid, deadline {format_timestamp(statement.deadline)}", file=sys.stderr)

    if args.output:
        write_text(proof, args.output)
        print(f"Proof saved to: {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(proof)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="canarychain",
        description="Warrant canary chain tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  canarychain keygen --kid canary-01 --private signing.json --public canary.pub
  canarychain seal -k signing.json --days 30 -o 001.proof
  canarychain seal -k signing.json --days 60 --previous 001.proof -o 002.proof
  canarychain verify -k canary.pub 001.proof 002.proof
  canarychain submit -s http://localhost:8000 -p 002.proof
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    keygen_parser = subparsers.add_parser("keygen", help="Generate signing key pair")
    keygen_parser.add_argument("--kid", required=True, help="Key identifier")
    keygen_parser.add_argument("--private", required=True, help="Output file for signing key")
    keygen_parser.add_argument("--public", required=True, help="Output file for public key")

    seal_parser = subparsers.add_parser("seal", help="Author and sign a canary")
    seal_parser.add_argument("-k", "--key", required=True, help="Signing key JSON file")
    when = seal_parser.add_mutually_exclusive_group(required=True)
    when.add_argument("--deadline", help="Deadline as YYYY-MM-DDTHH:MM:SSZ")
    when.add_argument("--days", type=int, help="Deadline in N days from now")
    prev = seal_parser.add_mutually_exclusive_group()
    prev.add_argument("--previous", help="Previous proof file to link to")
    prev.add_argument("--previous-hash", help="Previous proof hash to link to")
    seal_parser.add_argument("--author", help="Author identifier")
    seal_parser.add_argument("--description", help="Attestation text")
    seal_parser.add_argument("-o", "--output", help="Output file for proof")

    hash_parser = subparsers.add_parser("hash", help="Compute proof linkage hash")
    hash_parser.add_argument("-f", "--file", required=True, help="Proof file to hash")

    verify_parser = subparsers.add_parser("verify", help="Verify a canary chain")
    verify_parser.add_argument("-k", "--key", required=True, help="Public key file")
    verify_parser.add_argument("-d", "--store-dir", help="Proof store directory")
    verify_parser.add_argument("proofs", nargs="*", help="Proof files, oldest first")

    submit_parser = subparsers.add_parser("submit", help="Submit a proof to a server")
    submit_parser.add_argument("-s", "--server", required=True, help="Server base URL")
    submit_parser.add_argument("-p", "--proof", required=True, help="Proof file")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch the latest proof")
    fetch_parser.add_argument("-s", "--server", required=True, help="Server base URL")
    fetch_parser.add_argument("-k", "--key", help="Public key file to verify against")
    fetch_parser.add_argument("-o", "--output", help="Output file for proof")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "keygen": cmd_keygen,
        "seal": cmd_seal,
        "hash": cmd_hash,
        "verify": cmd_verify,
        "submit": cmd_submit,
        "fetch": cmd_fetch,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 2
    return command(args)


if __name__ == "__main__":
    sys.exit(main())
