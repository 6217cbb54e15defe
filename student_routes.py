"""
Student Routes
Roster CSV upload, student lookup and ledger (fine/fee) operations
"""

from flask import request, jsonify, current_app, send_file
from werkzeug.utils import secure_filename
from datetime import datetime
import io
import logging
import os

from db_single import get_session
from api_routes import json_error, HANDLED_ERRORS
from roster_helpers import import_students_csv
from fee_helpers import (
    get_student_by_prn, list_students, delete_student, add_payment_to_student,
    get_student_fines, mark_fine_as_paid, get_ledger_entry
)

logger = logging.getLogger(__name__)


def allowed_file(filename):
    extensions = current_app.config.get('ALLOWED_UPLOAD_EXTENSIONS', {'csv'})
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in extensions


def remove_upload(file_path):
    """Delete an uploaded file; failures are logged and ignored"""
    try:
        os.remove(file_path)
    except OSError as e:
        logger.error(f"Error deleting uploaded file {file_path}: {e}")


def register_student_routes(api_bp, require_admin_auth):
    """Register all student routes to the API blueprint"""

    @api_bp.route('/students/upload-csv', methods=['POST'])
    @require_admin_auth
    def upload_students_csv():
        """
        Insert new students or update existing ones (keyed by PRN) from a CSV.
        Existing fines are never modified by an upload.
        """
        file = request.files.get('file')
        if not file or not file.filename:
            return json_error('Please upload a CSV file', 400)
        if not allowed_file(file.filename):
            return json_error('Only CSV files are allowed', 400)

        upload_folder = current_app.config['UPLOAD_FOLDER']
        os.makedirs(upload_folder, exist_ok=True)
        filename = f"{datetime.utcnow().strftime('%Y%m%d%H%M%S%f')}_{secure_filename(file.filename)}"
        file_path = os.path.join(upload_folder, filename)
        file.save(file_path)

        session_db = get_session()
        try:
            with open(file_path, 'rb') as fh:
                raw_content = fh.read()

            result = import_students_csv(session_db, raw_content)
            return jsonify({
                'success': True,
                'message': 'CSV file processed successfully',
                'data': result.to_dict()
            })
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error processing roster upload {filename}: {e}")
            return json_error('Error processing CSV file', 500)
        finally:
            session_db.close()
            remove_upload(file_path)

    @api_bp.route('/students')
    @require_admin_auth
    def students():
        """Paginated student list (fines excluded)"""
        session_db = get_session()
        try:
            data = list_students(
                session_db,
                page=request.args.get('page', 1, type=int),
                limit=request.args.get('limit', 10, type=int),
                department=request.args.get('department'),
                has_fines=request.args.get('hasFines', '').lower() == 'true',
            )
            return jsonify({'success': True, 'data': data})
        except Exception as e:
            logger.error(f"Error listing students: {e}")
            return json_error('Error fetching students', 500)
        finally:
            session_db.close()

    @api_bp.route('/students/search/<prn>')
    @api_bp.route('/students/<prn>')
    @require_admin_auth
    def student_details(prn):
        """Student details with full fine history"""
        session_db = get_session()
        try:
            student = get_student_by_prn(session_db, prn)
            return jsonify({'success': True, 'data': student.to_dict()})
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error fetching student {prn}: {e}")
            return json_error('Error fetching student', 500)
        finally:
            session_db.close()

    @api_bp.route('/students/add-fine/<prn>', methods=['POST'])
    @require_admin_auth
    def add_fine(prn):
        """Record a paid fine/fee against a student and email the receipt"""
        data = request.get_json(silent=True) or {}
        session_db = get_session()
        try:
            entry = add_payment_to_student(
                session_db, prn,
                amount=data.get('amount'),
                reason=data.get('reason'),
                entry_type=data.get('type'),
                category=data.get('category'),
                entry_date=data.get('date'),
            )
            student = entry.student
            return jsonify({
                'success': True,
                'message': 'Payment added successfully',
                'data': {
                    'student': {
                        'prn': student.prn,
                        'name': student.name,
                        'department': student.department,
                        'email': student.email,
                    },
                    'payment': entry.to_dict(),
                    'receipt_number': entry.receipt_number,
                    'total_fines': student.total_fines,
                    'payment_count': len(student.fines),
                    'email_sent': bool(student.email),
                }
            }), 201
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error adding payment for {prn}: {e}")
            return json_error('Error adding payment', 500)
        finally:
            session_db.close()

    @api_bp.route('/students/<prn>/fines')
    @require_admin_auth
    def student_fines(prn):
        session_db = get_session()
        try:
            return jsonify({'success': True, 'data': get_student_fines(session_db, prn)})
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error fetching fines for {prn}: {e}")
            return json_error('Error fetching fines', 500)
        finally:
            session_db.close()

    @api_bp.route('/students/<prn>/fines/<int:fine_id>/pay', methods=['PUT'])
    @require_admin_auth
    def pay_fine(prn, fine_id):
        session_db = get_session()
        try:
            entry = mark_fine_as_paid(session_db, prn, fine_id)
            return jsonify({'success': True, 'message': 'Fine marked as paid', 'data': entry.to_dict()})
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error marking fine {fine_id} of {prn} as paid: {e}")
            return json_error('Error updating fine', 500)
        finally:
            session_db.close()

    @api_bp.route('/students/<prn>/fines/<int:fine_id>/receipt')
    @require_admin_auth
    def fine_receipt(prn, fine_id):
        """Download the receipt PDF for one ledger entry"""
        from receipt_pdf import build_receipt_pdf

        session_db = get_session()
        try:
            student, entry = get_ledger_entry(session_db, prn, fine_id)
            pdf = build_receipt_pdf(student.to_dict(include_fines=False), entry.to_dict())
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error generating receipt {fine_id} for {prn}: {e}")
            return json_error('Error generating receipt', 500)
        finally:
            session_db.close()

        return send_file(io.BytesIO(pdf), as_attachment=True,
                         download_name=f"receipt_{entry.receipt_number}.pdf", mimetype='application/pdf')

    @api_bp.route('/students/<prn>', methods=['DELETE'])
    @require_admin_auth
    def remove_student(prn):
        session_db = get_session()
        try:
            deleted = delete_student(session_db, prn)
            return jsonify({'success': True, 'message': 'Student deleted successfully', 'data': deleted})
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error deleting student {prn}: {e}")
            return json_error('Error deleting student', 500)
        finally:
            session_db.close()
