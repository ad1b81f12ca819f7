from flask import Blueprint, jsonify, make_response, current_app
from flask_login import login_user, logout_user, current_user
from storage import StorageError
from certificate import DuplicateStudentError
from utils import json_error, get_json_payload, clean_field, get_service, admin_required, is_admin
import logging

admin_bp = Blueprint('admin', __name__, url_prefix='/api')


def _raw_file_response(store, content_type, label):
    try:
        content = store.read_raw()
    except OSError:
        logging.exception(f'[ADMIN] Failed to read {store.path}')
        return json_error(f'Failed to read {label}', 500)
    resp = make_response(content, 200)
    resp.headers['Content-Type'] = content_type
    resp.headers['Cache-Control'] = 'no-store'
    return resp


@admin_bp.route('/admin/login', methods=['POST'])
def admin_login():
    payload = get_json_payload()
    username = payload.get('username')
    password = payload.get('password')
    admin = current_app.extensions['admin_user']
    if isinstance(username, str) and isinstance(password, str) and admin.login(username, password):
        login_user(admin)
        logging.info(f'[ADMIN] {username} logged in')
        return jsonify({'success': True})
    logging.warning('[ADMIN] Failed login attempt')
    return json_error('Invalid credentials', 401)


@admin_bp.route('/admin/logout', methods=['POST'])
def admin_logout():
    if current_user.is_authenticated:
        logging.info(f'[ADMIN] {current_user.username} logged out')
    logout_user()
    return jsonify({'success': True})


@admin_bp.route('/admin/me', methods=['GET'])
def admin_me():
    if is_admin():
        return jsonify({'authenticated': True, 'username': current_user.username})
    return jsonify({'authenticated': False, 'error': 'Unauthorized'}), 401


@admin_bp.route('/students', methods=['GET'])
@admin_required
def list_students():
    try:
        students = [s.to_dict() for s in get_service().list_students()]
        return jsonify({'success': True, 'students': students, 'count': len(students)})
    except Exception:
        logging.exception('[ADMIN] list_students error')
        return json_error('Internal server error', 500)


@admin_bp.route('/students', methods=['POST'])
@admin_required
def add_student():
    try:
        payload = get_json_payload()
        name = clean_field(payload, 'name')
        email = clean_field(payload, 'email')
        if not name or not email:
            return json_error('Name and email are required', 400)
        try:
            get_service().add_student(name, email, clean_field(payload, 'eligibility'))
        except DuplicateStudentError:
            return json_error('Student already exists', 409)
        except StorageError:
            return json_error('Failed to save student', 500)
        return jsonify({'success': True, 'message': 'Student added successfully'})
    except Exception:
        logging.exception('[ADMIN] add_student error')
        return json_error('Internal server error', 500)


@admin_bp.route('/admin/students.csv', methods=['GET'])
@admin_required
def download_students_csv():
    return _raw_file_response(get_service().students, 'text/csv; charset=utf-8', 'CSV')


@admin_bp.route('/admin/references.json', methods=['GET'])
@admin_required
def download_references_json():
    return _raw_file_response(get_service().references, 'application/json; charset=utf-8', 'references')


@admin_bp.route('/cleanup_duplicates', methods=['POST'])
@admin_required
def cleanup_duplicates():
    try:
        kept, removed = get_service().cleanup_duplicates()
        return jsonify({
            'success': True,
            'message': f'Cleanup completed. Removed {len(removed)} duplicate certificates.',
            'duplicates_removed': removed,
            'total_certificates': len(kept),
        })
    except Exception:
        logging.exception('[CLEANUP] cleanup_duplicates error')
        return json_error('Internal server error', 500)


@admin_bp.route('/admin/clear_references', methods=['POST'])
@admin_required
def clear_references():
    try:
        get_service().clear_references()
        return jsonify({'success': True, 'message': 'All certificate references cleared.'})
    except Exception:
        logging.exception('[ADMIN] clear_references error')
        return json_error('Failed to clear references', 500)


@admin_bp.route('/admin/reset_system', methods=['POST'])
@admin_required
def reset_system():
    try:
        get_service().reset_system()
        return jsonify({'success': True, 'message': 'System reset completed.'})
    except Exception:
        logging.exception('[ADMIN] reset_system error')
        return json_error('Failed to reset system', 500)
