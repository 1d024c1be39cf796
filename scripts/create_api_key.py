#!/usr/bin/env python3
"""
Issue an external API key from the shell.

The plaintext key is printed once. It is not stored and cannot be shown again.

Usage:
    python scripts/create_api_key.py --company <company_id> --name "Portal feed"
    python scripts/create_api_key.py --company <id> --name CI --permissions score_single,score_batch --rate-limit 120
    python scripts/create_api_key.py --create-company "Acme Homes" --name "Acme website"

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leadengine.config import API_PERMISSIONS
from leadengine.database import get_session
from leadengine.models.company import Company
from leadengine.services.api_keys import ApiKeyService


def _create_company(name):
    session = get_session()
    try:
        company = Company(name=name)
        session.add(company)
        session.commit()
        return company.id
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description='Issue an API key for the external scoring API')
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument('--company', help='Existing company id')
    target.add_argument('--create-company', metavar='NAME', help='Create a company with this name first')
    parser.add_argument('--name', required=True, help='Label shown in the key list')
    parser.add_argument('--permissions', default=','.join(API_PERMISSIONS),
                        help=f"Comma-separated flags (default: {','.join(API_PERMISSIONS)})")
    parser.add_argument('--rate-limit', type=int, default=None, help='Requests per minute')
    args = parser.parse_args()

    granted = {p.strip() for p in args.permissions.split(',') if p.strip()}
    unknown = granted - set(API_PERMISSIONS)
    if unknown:
        parser.error(f"unknown permissions: {', '.join(sorted(unknown))}")
    permissions = {p: p in granted for p in API_PERMISSIONS}

    company_id = args.company or _create_company(args.create_company)

    created = ApiKeyService(get_session).create_api_key(
        company_id, args.name, permissions=permissions, rate_limit_per_minute=args.rate_limit,
    )
    if not created.ok:
        print(f"ERROR: {created.error.message}", file=sys.stderr)
        sys.exit(1)

    key, plaintext = created.value
    print(f"Company:     {company_id}")
    print(f"Key id:      {key['id']}")
    print(f"Prefix:      {key['key_prefix']}")
    print(f"Permissions: {', '.join(p for p, on in key['permissions'].items() if on) or 'none'}")
    print(f"Rate limit:  {key['rate_limit_per_minute']}/min")
    print()
    print(f"  {plaintext}")
    print()
    print("Store this key now. It will not be shown again.")


if __name__ == '__main__':
    main()
