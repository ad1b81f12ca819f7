"""
Flat-file storage for the certificate service.

The student roster lives in a CSV file and the issued certificate
references in a JSON map keyed by reference id. Every read loads the
whole file; every write replaces the whole file.
"""
import csv
import io
import json
import logging
import os
import stat
import tempfile
import threading
from contextlib import contextmanager

from models import Student, CertificateReference, STUDENT_FIELDS

STUDENTS_FILENAME = 'students.csv'
REFERENCES_FILENAME = 'references.json'
CSV_HEADER = ','.join(STUDENT_FIELDS) + '\n'

STATUS_OK = 'ok'
STATUS_MISSING = 'missing'
STATUS_CORRUPT = 'corrupt'

def _current_umask():
    mask = os.umask(0)
    os.umask(mask)
    return mask


_DEFAULT_FILE_MODE = 0o666 & ~_current_umask()

_locks = {}
_locks_guard = threading.Lock()


class StorageError(Exception):
    """A backing file could not be written."""


class LoadResult:
    """Outcome of reading a backing file.

    `data` is always usable: an empty collection when the file is
    missing (first run) or could not be parsed.
    """

    def __init__(self, data, status=STATUS_OK, error=None):
        self.data = data
        self.status = status
        self.error = error

    @property
    def ok(self):
        return self.status == STATUS_OK

    @property
    def missing(self):
        return self.status == STATUS_MISSING

    @property
    def corrupt(self):
        return self.status == STATUS_CORRUPT

    def __repr__(self):
        return f'<LoadResult {self.status} items={len(self.data)}>'


def _lock_for(path):
    key = os.path.abspath(path)
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _locks[key] = lock
        return lock


def atomic_write(path, text):
    """Write `text` to `path` via a temp file and os.replace."""
    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = _DEFAULT_FILE_MODE
        fd, tmp_path = tempfile.mkstemp(prefix='.tmp-', dir=directory)
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as e:
        logging.exception(f'[STORE] Failed writing {path}')
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        raise StorageError(f'Could not write {os.path.basename(path)}') from e


class FlatFileStore:
    filename = None

    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.path = os.path.join(data_dir, self.filename)

    @contextmanager
    def locked(self):
        """Serialise a read-modify-write cycle on this file within the process."""
        lock = _lock_for(self.path)
        with lock:
            yield self

    def exists(self):
        return os.path.exists(self.path)

    def read_raw(self):
        """Return the file's text exactly as stored."""
        with open(self.path, 'r', encoding='utf-8') as fh:
            return fh.read()

    def _write_text(self, text):
        with self.locked():
            atomic_write(self.path, text)


class StudentStore(FlatFileStore):
    """CSV roster with header name,email,eligibility."""

    filename = STUDENTS_FILENAME

    def load(self):
        if not self.exists():
            return LoadResult([], STATUS_MISSING)
        try:
            with open(self.path, 'r', encoding='utf-8', newline='') as fh:
                reader = csv.DictReader(fh)
                students = []
                for row in reader:
                    row.pop(None, None)
                    if not any((v or '').strip() for v in row.values()):
                        continue
                    students.append(Student.from_row(row))
        except (csv.Error, UnicodeDecodeError, OSError) as e:
            logging.warning(f'[STORE] Unreadable roster {self.path}: {e}')
            return LoadResult([], STATUS_CORRUPT, error=str(e))
        return LoadResult(students)

    def read_all(self):
        return self.load().data

    def write_all(self, students):
        rows = [s.to_dict() if isinstance(s, Student) else dict(s) for s in students]
        if not rows:
            self._write_text(CSV_HEADER)
            return True
        fieldnames = list(STUDENT_FIELDS)
        for row in rows:
            for key in row:
                if key not in fieldnames:
                    fieldnames.append(key)
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=fieldnames, lineterminator='\n')
        writer.writeheader()
        writer.writerows(rows)
        self._write_text(buf.getvalue())
        return True

    def find(self, name, email):
        """First student matching (name, email) case-insensitively, or None."""
        for student in self.read_all():
            if student.matches(name, email):
                return student
        return None

    def append(self, student):
        with self.locked():
            students = self.read_all()
            students.append(student)
            return self.write_all(students)

    def reset(self):
        self._write_text(CSV_HEADER)

    def ensure(self):
        if not self.exists():
            self.reset()
            logging.info(f'[STORE] Created roster {self.path}')


class ReferenceStore(FlatFileStore):
    """JSON object mapping reference id -> reference record."""

    filename = REFERENCES_FILENAME

    def load(self):
        if not self.exists():
            return LoadResult({}, STATUS_MISSING)
        try:
            with open(self.path, 'r', encoding='utf-8') as fh:
                raw = json.load(fh)
        except (ValueError, UnicodeDecodeError, OSError) as e:
            logging.warning(f'[STORE] Unreadable references {self.path}: {e}')
            return LoadResult({}, STATUS_CORRUPT, error=str(e))
        if not isinstance(raw, dict):
            logging.warning(f'[STORE] References file {self.path} is not a JSON object')
            return LoadResult({}, STATUS_CORRUPT, error='not a JSON object')
        references = {}
        for ref_id, data in raw.items():
            if not isinstance(data, dict):
                logging.warning(f'[STORE] Skipping malformed reference entry {ref_id!r}')
                continue
            if data.get('user') is not None and not isinstance(data.get('user'), dict):
                logging.warning(f'[STORE] Skipping reference {ref_id!r} with malformed user snapshot')
                continue
            ref = CertificateReference.from_dict(data)
            if not ref.id:
                ref.id = ref_id
            references[ref_id] = ref
        return LoadResult(references)

    def read_all(self):
        return self.load().data

    def write_all(self, references):
        payload = {}
        for ref_id, ref in references.items():
            payload[ref_id] = ref.to_dict() if isinstance(ref, CertificateReference) else ref
        self._write_text(json.dumps(payload, indent=2))
        return True

    def get(self, reference_id):
        return self.read_all().get(reference_id)

    def clear(self):
        self._write_text('{}')

    def ensure(self):
        if not self.exists():
            self.clear()
            logging.info(f'[STORE] Created reference store {self.path}')


def ensure_data_files(data_dir):
    """Create the data directory and empty backing files on first run."""
    os.makedirs(data_dir, exist_ok=True)
    StudentStore(data_dir).ensure()
    ReferenceStore(data_dir).ensure()
