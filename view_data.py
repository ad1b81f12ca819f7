#!/usr/bin/env python3
"""
Quick viewer for the flat-file data
Shows the student roster, issued references and download statistics
"""

import sys
from pathlib import Path

app_dir = Path(__file__).parent
if str(app_dir) not in sys.path:
    sys.path.insert(0, str(app_dir))

from dotenv import load_dotenv
from tabulate import tabulate
from certificate import CertificateService
from config import get_data_dir


def roster_table(students):
    return tabulate([[s.name, s.email, s.eligibility or ''] for s in students],
                    headers=['Name', 'Email', 'Eligibility'], tablefmt='grid')


def references_table(references):
    rows = []
    for ref in references.values():
        user = ref.user or {}
        rows.append([ref.id, user.get('name', ''), user.get('email', ''), ref.timestamp,
                     'yes' if ref.downloaded else 'no', ref.download_count, ref.last_download or ''])
    return tabulate(rows, headers=['Reference', 'Name', 'Email', 'Issued', 'Downloaded', 'Count', 'Last download'],
                    tablefmt='grid')


def show_data_info(data_dir):
    """Display roster, references and stats"""
    service = CertificateService(data_dir)

    roster = service.students.load()
    print(f"📋 Students ({service.students.path}): {len(roster.data)} [{roster.status}]")
    if roster.data:
        print(roster_table(roster.data))

    refs = service.references.load()
    print(f"\n🎓 References ({service.references.path}): {len(refs.data)} [{refs.status}]")
    if refs.data:
        print(references_table(refs.data))

    stats = service.get_stats()
    print()
    print(tabulate(sorted(stats.items()), headers=['Statistic', 'Value'], tablefmt='simple'))


if __name__ == "__main__":
    load_dotenv()
    show_data_info(sys.argv[1] if len(sys.argv) > 1 else get_data_dir())
