import pytest
from flask import url_for


@pytest.fixture()
def app(tmp_path):
    from app import create_app
    return create_app({'SECRET_KEY': 'x', 'ADMIN_USER': 'admin', 'ADMIN_PASS': 'pw', 'DATA_DIR': str(tmp_path)})


def test_api_endpoints_registered(app):
    # Only checks that url_for can build the endpoints; no requests are made.
    with app.test_request_context():
        assert url_for('main.verify_credentials') == '/api/verify_credentials'
        assert url_for('main.get_certificate') == '/api/get_certificate'
        assert url_for('main.health') == '/api/health'
        assert url_for('admin.admin_login') == '/api/admin/login'
        assert url_for('admin.list_students') == '/api/students'
        assert url_for('admin.cleanup_duplicates') == '/api/cleanup_duplicates'


def test_bootstrap_creates_data_files(app, tmp_path):
    assert (tmp_path / 'students.csv').read_text(encoding='utf-8') == 'name,email,eligibility\n'
    assert (tmp_path / 'references.json').read_text(encoding='utf-8') == '{}'
