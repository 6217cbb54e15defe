"""
Finance Routes
Department expenditures, the financial summary and the monthly report
"""

from flask import request, jsonify
import logging

from db_single import get_session
from api_routes import current_admin_id, json_error, HANDLED_ERRORS
from expense_helpers import (
    add_expenditure, list_expenditures, get_expenditure, update_expenditure, delete_expenditure
)
from finance_helpers import get_financial_summary, get_monthly_report

logger = logging.getLogger(__name__)


def register_finance_routes(api_bp, require_admin_auth):
    """Register all finance routes to the API blueprint"""

    @api_bp.route('/expenditure/add', methods=['POST'])
    @require_admin_auth
    def expenditure_add():
        data = request.get_json(silent=True) or {}
        session_db = get_session()
        try:
            expenditure = add_expenditure(
                session_db,
                amount=data.get('amount'),
                description=data.get('description'),
                category=data.get('category'),
                department=data.get('department'),
                expense_date=data.get('date'),
                receipt_number=data.get('receipt_number'),
                notes=data.get('notes'),
                added_by=current_admin_id(),
            )
            return jsonify({
                'success': True,
                'message': 'Expenditure added successfully',
                'data': expenditure.to_dict()
            }), 201
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error adding expenditure: {e}")
            return json_error('Error adding expenditure', 500)
        finally:
            session_db.close()

    @api_bp.route('/expenditure/summary')
    @require_admin_auth
    def financial_summary():
        """Total income, total expenditure and balance"""
        session_db = get_session()
        try:
            return jsonify({'success': True, 'data': get_financial_summary(session_db)})
        except Exception as e:
            logger.error(f"Error building financial summary: {e}")
            return json_error('Error fetching financial summary', 500)
        finally:
            session_db.close()

    @api_bp.route('/expenditure/report/monthly')
    @require_admin_auth
    def monthly_report():
        session_db = get_session()
        try:
            year = request.args.get('year', type=int)
            return jsonify({'success': True, 'data': get_monthly_report(session_db, year)})
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error building monthly report: {e}")
            return json_error('Error fetching monthly report', 500)
        finally:
            session_db.close()

    @api_bp.route('/expenditure')
    @require_admin_auth
    def expenditures():
        session_db = get_session()
        try:
            data = list_expenditures(
                session_db,
                page=request.args.get('page', 1, type=int),
                limit=request.args.get('limit', 10, type=int),
                category=request.args.get('category'),
                department=request.args.get('department'),
                start_date=request.args.get('startDate'),
                end_date=request.args.get('endDate'),
            )
            return jsonify({'success': True, 'data': data})
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error listing expenditures: {e}")
            return json_error('Error fetching expenditures', 500)
        finally:
            session_db.close()

    @api_bp.route('/expenditure/<int:expenditure_id>')
    @require_admin_auth
    def expenditure_detail(expenditure_id):
        session_db = get_session()
        try:
            return jsonify({'success': True, 'data': get_expenditure(session_db, expenditure_id).to_dict()})
        except HANDLED_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error fetching expenditure {expenditure_id}: {e}")
            return json_error('Error fetching expenditure', 500)
        finally:
            session_db.close()

    @api_bp.route('/expenditure/<int:expenditure_id>', methods=['PUT'])
    @require_admin_auth
    def expenditure_update(expenditure_id):
        data = request.get_json(silent=True) or {}
        session_db = get_session()
        try:
            expenditure = update_expenditure(session_db, expenditure_id, data)
            return jsonify({
                'success': True,
                'message': 'Expenditure updated successfully',
                'data': expenditure.to_dict()
            })
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error updating expenditure {expenditure_id}: {e}")
            return json_error('Error updating expenditure', 500)
        finally:
            session_db.close()

    @api_bp.route('/expenditure/<int:expenditure_id>', methods=['DELETE'])
    @require_admin_auth
    def expenditure_delete(expenditure_id):
        session_db = get_session()
        try:
            deleted = delete_expenditure(session_db, expenditure_id)
            return jsonify({'success': True, 'message': 'Expenditure deleted successfully', 'data': deleted})
        except HANDLED_ERRORS:
            session_db.rollback()
            raise
        except Exception as e:
            session_db.rollback()
            logger.error(f"Error deleting expenditure {expenditure_id}: {e}")
            return json_error('Error deleting expenditure', 500)
        finally:
            session_db.close()
