from datetime import datetime, UTC
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

ELIGIBLE_VALUES = ('eligible', 'well done')
DEFAULT_ELIGIBILITY = 'not eligible'
STUDENT_FIELDS = ['name', 'email', 'eligibility']


def normalize(value):
    """Trim and lowercase a value for case-insensitive matching."""
    if value is None:
        return ''
    return str(value).strip().lower()


def student_key(name, email):
    return (normalize(name), normalize(email))


def utc_now_iso():
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(UTC).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'


class AdminUser(UserMixin):
    """The single configured administrator.

    There is no admin table: the username and password come from the
    environment and the password is only kept as a hash.
    """

    def __init__(self, username, password=None):
        self.username = username
        self.password_hash = None
        if password is not None:
            self.set_password(password)

    def get_id(self):
        return str(self.username)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash or password is None:
            return False
        return check_password_hash(self.password_hash, password)

    def login(self, username, password):
        if username == self.username and self.check_password(password):
            return self
        return None


class Student:
    """One roster row. Extra CSV columns are carried along untouched."""

    def __init__(self, name, email, eligibility=None, extra=None):
        self.name = name or ''
        self.email = email or ''
        self.eligibility = eligibility
        self.extra = dict(extra or {})

    @classmethod
    def from_row(cls, row):
        row = dict(row or {})
        name = row.pop('name', '') or ''
        email = row.pop('email', '') or ''
        eligibility = row.pop('eligibility', None)
        return cls(name, email, eligibility, extra=row)

    def to_dict(self):
        data = {'name': self.name, 'email': self.email, 'eligibility': self.eligibility or ''}
        data.update(self.extra)
        return data

    @property
    def key(self):
        return student_key(self.name, self.email)

    def matches(self, name, email):
        return self.key == student_key(name, email)

    def EligibleForCertificate(self):
        return is_eligible(self)

    def __repr__(self):
        return f'<Student {self.name} <{self.email}> {self.eligibility!r}>'


def is_eligible(student):
    """True iff the student's eligibility is 'eligible' or 'well done'.

    Accepts a Student, a plain dict row, or None.
    """
    if student is None:
        return False
    if isinstance(student, dict):
        eligibility = student.get('eligibility')
    else:
        eligibility = getattr(student, 'eligibility', None)
    if not eligibility:
        return False
    return normalize(eligibility) in ELIGIBLE_VALUES


def _to_count(value):
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


class CertificateReference:
    """An issued certificate reference as stored in references.json."""

    def __init__(self, id, user, timestamp=None, downloaded=False, download_count=0, last_download=None):
        self.id = id
        self.user = dict(user) if user else None
        self.timestamp = timestamp or utc_now_iso()
        self.downloaded = bool(downloaded)
        self.download_count = _to_count(download_count)
        self.last_download = last_download

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            id=data.get('id'),
            user=data.get('user'),
            timestamp=data.get('timestamp'),
            downloaded=data.get('downloaded', False),
            download_count=data.get('download_count', 0),
            last_download=data.get('last_download'),
        )

    def to_dict(self):
        data = {
            'id': self.id,
            'user': self.user,
            'timestamp': self.timestamp,
            'downloaded': self.downloaded,
            'download_count': self.download_count,
        }
        if self.last_download:
            data['last_download'] = self.last_download
        return data

    @property
    def student_key(self):
        if not self.user:
            return None
        return student_key(self.user.get('name'), self.user.get('email'))

    def belongs_to(self, name, email):
        return self.student_key is not None and self.student_key == student_key(name, email)

    def mark_downloaded(self):
        self.downloaded = True
        self.download_count = (self.download_count or 0) + 1
        self.last_download = utc_now_iso()

    def __repr__(self):
        return f'<CertificateReference {self.id} downloads={self.download_count}>'
