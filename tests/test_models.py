import pytest
from models import AdminUser, Student, CertificateReference, is_eligible, student_key


@pytest.mark.parametrize('value', ['eligible', 'Eligible', '  ELIGIBLE  ', 'well done', 'Well Done', ' WELL DONE\t'])
def test_eligible_values(value):
    assert is_eligible(Student('A', 'a@example.com', value)) is True
    assert is_eligible({'name': 'A', 'email': 'a@example.com', 'eligibility': value}) is True


@pytest.mark.parametrize('value', [None, '', '   ', 'not eligible', 'ineligible', 'well-done', 'eligible!', 'pending'])
def test_ineligible_values(value):
    assert is_eligible(Student('A', 'a@example.com', value)) is False


def test_missing_student_is_not_eligible():
    assert is_eligible(None) is False
    assert is_eligible({'name': 'A', 'email': 'a@example.com'}) is False


def test_student_matching_is_trimmed_and_case_insensitive():
    s = Student('Jane Doe', 'jane@x.com', 'eligible')
    assert s.matches('  jane doe ', 'JANE@X.COM')
    assert not s.matches('Jane', 'jane@x.com')
    assert s.key == student_key('JANE DOE', ' jane@x.com')


def test_student_row_keeps_extra_columns():
    s = Student.from_row({'name': 'A', 'email': 'a@x.com', 'eligibility': 'eligible', 'cohort': '2024'})
    assert s.extra == {'cohort': '2024'}
    assert s.to_dict() == {'name': 'A', 'email': 'a@x.com', 'eligibility': 'eligible', 'cohort': '2024'}


def test_new_reference_defaults():
    ref = CertificateReference('CERT-1-ABCDE', {'name': 'A', 'email': 'a@x.com', 'eligibility': 'eligible'})
    data = ref.to_dict()
    assert data['downloaded'] is False
    assert data['download_count'] == 0
    assert data['timestamp'].endswith('Z')
    assert 'last_download' not in data


def test_reference_mark_downloaded_increments():
    ref = CertificateReference('CERT-1-ABCDE', {'name': 'A', 'email': 'a@x.com'})
    ref.mark_downloaded()
    ref.mark_downloaded()
    assert ref.downloaded is True
    assert ref.download_count == 2
    assert ref.last_download


def test_reference_without_user_belongs_to_nobody():
    ref = CertificateReference.from_dict({'id': 'CERT-1-ABCDE'})
    assert ref.student_key is None
    assert not ref.belongs_to('', '')


def test_admin_user_password_check():
    admin = AdminUser('admin', 's3cret')
    assert admin.password_hash != 's3cret'
    assert admin.login('admin', 's3cret') is admin
    assert admin.login('admin', 'wrong') is None
    assert admin.login('Admin', 's3cret') is None
    assert admin.get_id() == 'admin'
