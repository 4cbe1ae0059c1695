#!/usr/bin/env python3
"""Provision the DynamoDB tables for an environment.

Creates every table declared in bluewater.services.tables that does not
exist yet. Existing tables are left untouched.

Usage:
    python scripts/create_tables.py --env dev
    python scripts/create_tables.py --env dev --endpoint-url http://localhost:8000
"""

import argparse
import os
import sys
from pathlib import Path

# Add shared package to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "shared" / "src"))

import boto3  # noqa: E402

from bluewater.services.tables import create_tables  # noqa: E402


def main() -> int:
    """Run the provisioning script."""
    parser = argparse.ArgumentParser(description="Create DynamoDB tables")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "eu-west-1"),
        help="AWS region (default: eu-west-1 or AWS_DEFAULT_REGION env var)",
    )
    parser.add_argument(
        "--endpoint-url",
        default=None,
        help="DynamoDB endpoint override, e.g. DynamoDB Local",
    )
    args = parser.parse_args()

    prefix = os.environ.get("DYNAMODB_TABLE_PREFIX", f"bluewater-{args.env}")
    client = boto3.client("dynamodb", region_name=args.region, endpoint_url=args.endpoint_url)

    print(f"\nCreating tables with prefix {prefix} (region: {args.region})\n")
    try:
        created = create_tables(client, prefix)
    except Exception as e:
        print(f"  ❌ Failed to create tables: {e}")
        return 1

    for name in created:
        print(f"  ✓ {name}")
    if not created:
        print("  All tables already exist")

    print("\n✅ Tables ready!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
