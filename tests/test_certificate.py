import json
import re
import threading
import pytest
from certificate import (CertificateService, DuplicateStudentError, generate_reference_id,
                         reconcile_references, to_base36)
from models import Student, CertificateReference

REF_PATTERN = re.compile(r'^CERT-[0-9A-Z]+-[0-9A-Z]{5}$')


def _seed_students(data_dir, rows):
    lines = ['name,email,eligibility'] + [','.join(r) for r in rows]
    (data_dir / 'students.csv').write_text('\n'.join(lines) + '\n', encoding='utf-8')


def _seed_references(data_dir, refs):
    (data_dir / 'references.json').write_text(json.dumps(refs), encoding='utf-8')


def _ref(ref_id, name, email, timestamp, download_count=0):
    return {'id': ref_id, 'user': {'name': name, 'email': email, 'eligibility': 'eligible'},
            'timestamp': timestamp, 'downloaded': download_count > 0, 'download_count': download_count}


@pytest.fixture()
def service(tmp_path):
    svc = CertificateService(str(tmp_path))
    svc.bootstrap()
    _seed_students(tmp_path, [('Jane Doe', 'jane@x.com', 'eligible'),
                              ('Bob Ray', 'bob@x.com', 'not eligible')])
    return svc


def test_to_base36():
    assert to_base36(0) == '0'
    assert to_base36(35) == 'Z'
    assert to_base36(36) == '10'
    assert to_base36(1700000000) == 'S44WE8'


def test_reference_id_format():
    ref_id = generate_reference_id(now=1700000000)
    assert REF_PATTERN.match(ref_id)
    assert ref_id.startswith('CERT-S44WE8-')
    assert REF_PATTERN.match(generate_reference_id())


def test_issue_then_reuse_returns_same_reference(service):
    student = service.find_student('jane doe', 'JANE@X.COM')
    ref1, existing1 = service.issue_or_reuse(student)
    ref2, existing2 = service.issue_or_reuse(student)
    assert existing1 is False
    assert existing2 is True
    assert ref1.id == ref2.id
    assert REF_PATTERN.match(ref1.id)
    stored = service.get_reference(ref1.id)
    assert stored.user == {'name': 'Jane Doe', 'email': 'jane@x.com', 'eligibility': 'eligible'}
    assert stored.downloaded is False
    assert stored.download_count == 0


def test_issue_refuses_ineligible_student(service):
    with pytest.raises(ValueError):
        service.issue_or_reuse(service.find_student('Bob Ray', 'bob@x.com'))
    assert service.references.read_all() == {}


def test_concurrent_issue_creates_one_reference(service):
    student = service.find_student('Jane Doe', 'jane@x.com')
    results = []

    def worker():
        results.append(service.issue_or_reuse(student)[0].id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(set(results)) == 1
    assert len(service.references.read_all()) == 1


def test_reference_snapshot_survives_roster_changes(service, tmp_path):
    ref, _ = service.issue_or_reuse(service.find_student('Jane Doe', 'jane@x.com'))
    _seed_students(tmp_path, [('Jane Doe', 'jane@x.com', 'Well Done')])
    assert service.get_reference(ref.id).user['eligibility'] == 'eligible'


def test_mark_downloaded_increments(service):
    ref, _ = service.issue_or_reuse(service.find_student('Jane Doe', 'jane@x.com'))
    service.mark_downloaded(ref.id)
    updated = service.mark_downloaded(ref.id)
    assert updated.download_count == 2
    stored = service.get_reference(ref.id)
    assert stored.downloaded is True
    assert stored.download_count == 2
    assert stored.last_download


def test_mark_downloaded_unknown_id_leaves_store_unchanged(service, tmp_path):
    service.issue_or_reuse(service.find_student('Jane Doe', 'jane@x.com'))
    before = (tmp_path / 'references.json').read_text(encoding='utf-8')
    assert service.mark_downloaded('CERT-NOPE-00000') is None
    assert (tmp_path / 'references.json').read_text(encoding='utf-8') == before


def test_cleanup_keeps_latest_reference(service, tmp_path):
    _seed_references(tmp_path, {
        'OLD': _ref('OLD', 'Jane Doe', 'jane@x.com', '2024-01-01T00:00:00.000Z', 5),
        'NEW': _ref('NEW', ' jane doe', 'JANE@x.com', '2024-02-01T00:00:00.000Z', 0),
        'BOB': _ref('BOB', 'Bob Ray', 'bob@x.com', '2024-01-01T00:00:00.000Z'),
    })
    kept, removed = service.cleanup_duplicates()
    assert removed == ['OLD']
    assert sorted(kept) == ['BOB', 'NEW']
    assert sorted(service.references.read_all()) == ['BOB', 'NEW']


def test_cleanup_tie_prefers_more_downloads(service, tmp_path):
    ts = '2024-01-01T00:00:00.000Z'
    _seed_references(tmp_path, {
        'A': _ref('A', 'Jane Doe', 'jane@x.com', ts, 1),
        'B': _ref('B', 'Jane Doe', 'jane@x.com', ts, 3),
        'C': _ref('C', 'Jane Doe', 'jane@x.com', ts, 2),
    })
    kept, removed = service.cleanup_duplicates()
    assert list(kept) == ['B']
    assert sorted(removed) == ['A', 'C']


def test_cleanup_dry_run_does_not_write(service, tmp_path):
    _seed_references(tmp_path, {
        'A': _ref('A', 'Jane Doe', 'jane@x.com', '2024-01-01T00:00:00Z'),
        'B': _ref('B', 'Jane Doe', 'jane@x.com', '2024-01-02T00:00:00Z'),
    })
    before = (tmp_path / 'references.json').read_text(encoding='utf-8')
    _, removed = service.cleanup_duplicates(dry_run=True)
    assert removed == ['A']
    assert (tmp_path / 'references.json').read_text(encoding='utf-8') == before


def test_reconcile_drops_references_without_user():
    refs = {
        'A': CertificateReference.from_dict({'id': 'A', 'timestamp': '2024-01-01T00:00:00Z'}),
        'B': CertificateReference.from_dict(_ref('B', 'x', 'x@x.com', '2024-01-01T00:00:00Z')),
    }
    kept, removed = reconcile_references(refs)
    assert list(kept) == ['B']
    assert removed == []


def test_reconcile_keeps_first_when_timestamp_unreadable():
    refs = {
        'A': CertificateReference.from_dict(_ref('A', 'x', 'x@x.com', 'not a date')),
        'B': CertificateReference.from_dict(_ref('B', 'x', 'x@x.com', '2024-01-01T00:00:00Z', 4)),
    }
    kept, removed = reconcile_references(refs)
    assert list(kept) == ['A']
    assert removed == ['B']


def test_find_existing_reference(service):
    ref, _ = service.issue_or_reuse(service.find_student('Jane Doe', 'jane@x.com'))
    assert service.find_existing_reference('JANE DOE ', ' jane@X.com').id == ref.id
    assert service.find_existing_reference('Bob Ray', 'bob@x.com') is None


def test_stats(service, tmp_path):
    _seed_references(tmp_path, {
        'A': _ref('A', 'a', 'a@x.com', '2024-01-01T00:00:00Z', 3),
        'B': _ref('B', 'b', 'b@x.com', '2024-01-01T00:00:00Z', 0),
        'C': _ref('C', 'c', 'c@x.com', '2024-01-01T00:00:00Z', 1),
    })
    assert service.get_stats() == {'total_references': 3, 'total_downloads': 4, 'unique_downloads': 2}


def test_add_student_and_duplicate(service):
    student = service.add_student('  Ann Lee ', ' ann@x.com ', None)
    assert (student.name, student.email, student.eligibility) == ('Ann Lee', 'ann@x.com', 'not eligible')
    with pytest.raises(DuplicateStudentError):
        service.add_student('ANN LEE', 'Ann@X.com', 'eligible')
    assert len(service.list_students()) == 3


def test_clear_and_reset(service, tmp_path):
    service.issue_or_reuse(service.find_student('Jane Doe', 'jane@x.com'))
    service.clear_references()
    assert service.references.read_all() == {}
    assert len(service.list_students()) == 2
    service.reset_system()
    assert service.list_students() == []
    assert (tmp_path / 'students.csv').read_text(encoding='utf-8') == 'name,email,eligibility\n'
