"""
Certificate reference lifecycle for the certificate service.

Issuing, re-issuing, download tracking and duplicate reconciliation over
the flat-file stores in `storage`.
"""
import logging
import time
import uuid

from models import Student, CertificateReference, DEFAULT_ELIGIBILITY, is_eligible
from storage import StudentStore, ReferenceStore, ensure_data_files
from utils import safe_parse_datetime

REFERENCE_PREFIX = 'CERT'
_BASE36_DIGITS = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'


class DuplicateStudentError(ValueError):
    """A student with the same normalized name and email already exists."""


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError('base36 encoding needs a non-negative integer')
    if number == 0:
        return '0'
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36_DIGITS[rem])
    return ''.join(reversed(digits))


def generate_reference_id(now=None) -> str:
    """Return CERT-<base36 unix seconds>-<5 random uppercase chars>.

    Not checked against existing ids; collisions are possible but
    unlikely at the volumes this service handles.
    """
    seconds = int(time.time() if now is None else now)
    suffix = uuid.uuid4().hex[:5].upper()
    return f'{REFERENCE_PREFIX}-{to_base36(seconds)}-{suffix}'


def _is_preferred(candidate, incumbent):
    """True when `candidate` should replace `incumbent` as a student's only reference."""
    cand_ts = safe_parse_datetime(candidate.timestamp)
    inc_ts = safe_parse_datetime(incumbent.timestamp)
    if cand_ts is None or inc_ts is None:
        return False
    if cand_ts > inc_ts:
        return True
    return cand_ts == inc_ts and (candidate.download_count or 0) > (incumbent.download_count or 0)


def reconcile_references(references):
    """Collapse the reference map to one survivor per normalized student.

    Returns (kept, removed_ids). References with no user snapshot are
    dropped without being reported.
    """
    winners = {}
    kept = {}
    removed = []
    for ref_id, ref in references.items():
        key = ref.student_key
        if key is None:
            continue
        incumbent = winners.get(key)
        if incumbent is None:
            winners[key] = ref
            kept[ref_id] = ref
        elif _is_preferred(ref, incumbent):
            removed.append(incumbent.id)
            kept.pop(incumbent.id, None)
            winners[key] = ref
            kept[ref_id] = ref
        else:
            removed.append(ref_id)
    return kept, removed


class CertificateService:
    """Operations over one data directory (students.csv + references.json)."""

    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.students = StudentStore(data_dir)
        self.references = ReferenceStore(data_dir)

    def bootstrap(self):
        ensure_data_files(self.data_dir)

    # Students

    def list_students(self):
        return self.students.read_all()

    def find_student(self, name, email):
        return self.students.find(name, email)

    def add_student(self, name, email, eligibility=None):
        eligibility = (eligibility or '').strip() or DEFAULT_ELIGIBILITY
        student = Student(name.strip(), email.strip(), eligibility)
        with self.students.locked():
            if self.students.find(name, email):
                raise DuplicateStudentError(f'Student {email} already exists')
            self.students.append(student)
        logging.info(f'[STUDENTS] Added {student.email} ({student.eligibility})')
        return student

    # References

    def get_reference(self, reference_id):
        return self.references.get(reference_id)

    def find_existing_reference(self, name, email, references=None):
        if references is None:
            references = self.references.read_all()
        for ref in references.values():
            if ref.belongs_to(name, email):
                return ref
        return None

    def issue_or_reuse(self, student):
        """Return (reference, existing) for an eligible student."""
        if not is_eligible(student):
            raise ValueError('Student is not eligible for a certificate')
        with self.references.locked():
            references = self.references.read_all()
            existing = self.find_existing_reference(student.name, student.email, references)
            if existing:
                return existing, True
            ref = CertificateReference(generate_reference_id(), student.to_dict())
            references[ref.id] = ref
            self.references.write_all(references)
        logging.info(f'[CERT] Issued {ref.id} to {student.email}')
        return ref, False

    def mark_downloaded(self, reference_id):
        """Record a download. Returns the updated reference or None if unknown."""
        with self.references.locked():
            references = self.references.read_all()
            ref = references.get(reference_id)
            if ref is None:
                return None
            ref.mark_downloaded()
            self.references.write_all(references)
        logging.info(f'[CERT] {reference_id} downloaded ({ref.download_count})')
        return ref

    def cleanup_duplicates(self, dry_run=False):
        """Keep one reference per student; returns (kept, removed_ids)."""
        with self.references.locked():
            kept, removed = reconcile_references(self.references.read_all())
            if not dry_run:
                self.references.write_all(kept)
        logging.info(f'[CLEANUP] Removed {len(removed)} duplicate references (dry_run={dry_run})')
        return kept, removed

    def get_stats(self):
        refs = list(self.references.read_all().values())
        return {
            'total_references': len(refs),
            'total_downloads': sum(r.download_count or 0 for r in refs),
            'unique_downloads': sum(1 for r in refs if r.downloaded),
        }

    # Maintenance

    def clear_references(self):
        self.references.clear()
        logging.info('[ADMIN] All certificate references cleared')

    def reset_system(self):
        self.references.clear()
        self.students.reset()
        logging.info('[ADMIN] System reset: references cleared, roster reset to header')
