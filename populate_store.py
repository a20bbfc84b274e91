#!/usr/bin/env python3
"""
Company Store Population Script for the Network What-If Dashboard
Seeds the JSON company store with the sample networks, or checks an existing
store for derived metrics that no longer match their raw inputs.

Usage:
    python populate_store.py              # Seed an empty store
    python populate_store.py --force      # Overwrite a non-empty store
    python populate_store.py --validate   # Only report stale companies
    python populate_store.py --path P     # Use a store other than COMPANY_STORE_PATH

Environment Variables:
    COMPANY_STORE_PATH - Location of the JSON store (default data/companies.json)
"""

import os
import sys
import argparse
from typing import List
from dotenv import load_dotenv
from network_dashboard import DEFAULT_STORE_PATH
from network_dashboard.metrics import MetricsEngine
from network_dashboard.models import Company
from network_dashboard.repository import CompanyRepository, RepositoryError
from network_dashboard.sample_data import sample_companies


def find_stale_companies(companies: List[Company], engine: MetricsEngine) -> List[str]:
    """Ids of companies whose data or baseData changes when recalculated."""
    stale = []
    for company in companies:
        if engine.recalculate_all_metrics(company.data) != company.data:
            stale.append(company.id)
        elif engine.recalculate_all_metrics(company.base_data) != company.base_data:
            stale.append(company.id)
    return stale


def validate_store(repository: CompanyRepository, engine: MetricsEngine) -> bool:
    print(f"\n[VALIDATION] Checking {repository.path}...")
    if not os.path.exists(repository.path):
        print("[ERROR] Store does not exist")
        return False

    companies = repository.read_all()
    stale = set(find_stale_companies(companies, engine))
    for company in companies:
        label = "[STALE]" if company.id in stale else "[OK]"
        print(f"  {label} {company.name} ({company.id})")

    if stale:
        print(f"\n[WARNING] {len(stale)} of {len(companies)} companies have stale derived metrics")
        return False
    print(f"\n[SUCCESS] All {len(companies)} companies are up to date")
    return True


def populate_store(repository: CompanyRepository, force: bool = False) -> bool:
    print("\n[START] Starting store population...")
    existing = repository.read_all()
    if existing and not force:
        print(f"\n[WARNING] Store already contains {len(existing)} companies")
        print("[INFO] Use --force flag to overwrite")
        return False

    companies = repository.seed_companies()
    repository.replace_all(companies)
    for company in companies:
        print(f"  [OK] {company.name} - resilience {company.data.resilience_score}")
    print(f"\n[COMPLETE] Wrote {len(companies)} companies to {repository.path}")
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Populate the company store with sample networks")
    parser.add_argument('--path', help='Store location (defaults to COMPANY_STORE_PATH)')
    parser.add_argument('--force', action='store_true', help='Overwrite a non-empty store')
    parser.add_argument('--validate', action='store_true', help='Only report stale companies')

    args = parser.parse_args(argv)

    print("Network What-If Dashboard - Store Population Tool")
    print("=" * 55)

    load_dotenv()
    path = args.path or os.getenv('COMPANY_STORE_PATH', DEFAULT_STORE_PATH)

    engine = MetricsEngine()
    repository = CompanyRepository(path, recalculate=engine.recalculate_all_metrics, seed=sample_companies)

    try:
        if args.validate:
            return 0 if validate_store(repository, engine) else 1
        return 0 if populate_store(repository, force=args.force) else 1

    except RepositoryError as e:
        print(f"\n[ERROR] {e}")
        return 1
    except KeyboardInterrupt:
        print(f"\n[CANCELLED] Cancelled by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
