#!/usr/bin/env python3
"""
Collapse duplicate certificate references so each student keeps one.

The survivor is the most recently issued reference; on equal timestamps
the one with more downloads wins.

Usage:
    python cleanup_references.py             # rewrite references.json
    python cleanup_references.py --dry-run   # only report
"""
import argparse
import sys
from pathlib import Path

app_dir = Path(__file__).parent
if str(app_dir) not in sys.path:
    sys.path.insert(0, str(app_dir))

from dotenv import load_dotenv
from tabulate import tabulate
from certificate import CertificateService
from config import get_data_dir


def removed_rows(references, removed_ids):
    rows = []
    for ref_id in removed_ids:
        ref = references.get(ref_id)
        user = (ref.user or {}) if ref else {}
        rows.append([ref_id, user.get('name', ''), user.get('email', ''),
                     ref.timestamp if ref else '', ref.download_count if ref else 0])
    return rows


def cleanup(data_dir, dry_run=False):
    service = CertificateService(data_dir)
    before = service.references.read_all()
    kept, removed = service.cleanup_duplicates(dry_run=dry_run)
    print(f'Reference store: {service.references.path}')
    print(f'References before: {len(before)}')
    if removed:
        print(tabulate(removed_rows(before, removed),
                       headers=['Reference', 'Name', 'Email', 'Issued', 'Downloads'],
                       tablefmt='grid'))
    action = 'Would remove' if dry_run else 'Removed'
    print(f'{action} {len(removed)} duplicate references; {len(kept)} remain.')
    return kept, removed


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Remove duplicate certificate references')
    parser.add_argument('--dry-run', action='store_true', help='Report without rewriting the file')
    parser.add_argument('--data-dir', default=None, help='Data directory (default: DATA_DIR or ./data)')
    args = parser.parse_args()
    load_dotenv()
    cleanup(args.data_dir or get_data_dir(), dry_run=args.dry_run)
