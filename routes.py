"""
Public certificate API, using a Flask Blueprint.
"""
from flask import Blueprint, request, jsonify
from datetime import datetime, UTC
import logging
from storage import StorageError
from utils import json_error, get_json_payload, clean_field, get_service

main_bp = Blueprint('main', __name__)

SERVICE_NAME = 'Certificate Generator API'


@main_bp.route('/api/verify_credentials', methods=['POST'])
def verify_credentials():
    """Look the student up, check eligibility and issue (or re-issue) a reference."""
    try:
        payload = get_json_payload()
        name = clean_field(payload, 'name')
        email = clean_field(payload, 'email')
        if not name or not email:
            return json_error('Name and email are required', 400)

        service = get_service()
        student = service.find_student(name, email)
        if not student:
            return json_error('User not found. Please check your name and email address.', 404)

        if not student.EligibleForCertificate():
            logging.info(f'[VERIFY] {student.email} not eligible ({student.eligibility!r})')
            return json_error(
                'You are not eligible for a certificate at this time. Please contact your administrator.',
                403,
                eligibility_status=student.eligibility or 'unknown',
            )

        try:
            ref, existing = service.issue_or_reuse(student)
        except StorageError:
            return json_error('Failed to store reference', 500)

        body = {
            'success': True,
            'reference_id': ref.id,
            'user': ref.user if existing else student.to_dict(),
            'existing': existing,
        }
        if existing:
            body['created_date'] = ref.timestamp
        return jsonify(body)
    except Exception:
        logging.exception('[VERIFY] verify_credentials error')
        return json_error('Internal server error', 500)


@main_bp.route('/api/get_certificate', methods=['GET'])
def get_certificate():
    try:
        reference_id = (request.args.get('reference_id') or '').strip()
        if not reference_id:
            return json_error('Reference ID is required', 400)
        ref = get_service().get_reference(reference_id)
        if not ref:
            return json_error('Reference ID not found', 404)
        return jsonify({'success': True, 'data': ref.to_dict()})
    except Exception:
        logging.exception('[CERT] get_certificate error')
        return json_error('Internal server error', 500)


@main_bp.route('/api/mark_downloaded', methods=['POST'])
def mark_downloaded():
    try:
        reference_id = clean_field(get_json_payload(), 'reference_id')
        if not reference_id:
            return json_error('Reference ID is required', 400)
        try:
            ref = get_service().mark_downloaded(reference_id)
        except StorageError:
            ref = None
        if not ref:
            return json_error('Failed to update download status', 500)
        return jsonify({'success': True})
    except Exception:
        logging.exception('[CERT] mark_downloaded error')
        return json_error('Internal server error', 500)


@main_bp.route('/api/get_stats', methods=['GET'])
def get_stats():
    try:
        return jsonify(get_service().get_stats())
    except Exception:
        logging.exception('[STATS] get_stats error')
        return json_error('Internal server error', 500)


@main_bp.route('/api/health', methods=['GET'])
def health():
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now(UTC).isoformat(),
        'service': SERVICE_NAME,
    })


# The data directory is never served.
@main_bp.route('/data', defaults={'path': ''})
@main_bp.route('/data/<path:path>')
def block_data(path):
    return json_error('Forbidden', 403)
