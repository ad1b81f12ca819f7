#!/usr/bin/env python3
"""
Script to add a student to the roster
"""
import argparse
import sys
from pathlib import Path

app_dir = Path(__file__).parent
if str(app_dir) not in sys.path:
    sys.path.insert(0, str(app_dir))

from dotenv import load_dotenv
from certificate import CertificateService, DuplicateStudentError
from config import get_data_dir
from models import DEFAULT_ELIGIBILITY


def add_student(data_dir, name, email, eligibility=None):
    """Add a student; returns False if the name/email pair already exists"""
    service = CertificateService(data_dir)
    service.bootstrap()
    try:
        student = service.add_student(name, email, eligibility)
    except DuplicateStudentError:
        print(f"❌ Student '{name}' <{email}> already exists!")
        return False

    print("✅ Student added successfully!")
    print(f"   Name: {student.name}")
    print(f"   Email: {student.email}")
    print(f"   Eligibility: {student.eligibility}")
    return True


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Add a student to students.csv')
    parser.add_argument('--name')
    parser.add_argument('--email')
    parser.add_argument('--eligibility')
    parser.add_argument('--data-dir', default=None)
    args = parser.parse_args()
    load_dotenv()

    print("=" * 60)
    print("ADD STUDENT")
    print("=" * 60)

    name = args.name or input("Enter name: ").strip()
    email = args.email or input("Enter email: ").strip()
    eligibility = args.eligibility
    if eligibility is None:
        eligibility = input(f"Enter eligibility (default: {DEFAULT_ELIGIBILITY}): ").strip()
    if not name or not email:
        print("❌ Name and email are required")
        sys.exit(1)

    print()
    if not add_student(args.data_dir or get_data_dir(), name, email, eligibility):
        sys.exit(1)
