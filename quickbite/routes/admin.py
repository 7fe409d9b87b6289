from flask import Blueprint, request, jsonify, current_app
from quickbite import db
from quickbite.models.models import (
    MerchantApplication, ROLE_ADMIN, APPLICATION_APPROVED, APPLICATION_REJECTED,
)
from quickbite.models.rating import Rating, ReviewReport, REPORT_STATUSES
from quickbite.routes.guards import roles_required
from quickbite.services import accounts
from quickbite.services.accounts import AccountError
from quickbite.services.notification_service import NotificationService

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/api/merchant_applications', methods=['GET'])
@roles_required(ROLE_ADMIN)
def list_applications(user):
    try:
        query = MerchantApplication.query
        status = request.args.get('status')
        if status:
            query = query.filter_by(status=status)
        applications = query.order_by(MerchantApplication.created_at.desc(), MerchantApplication.id.desc()).all()
        return jsonify([application.to_dict() for application in applications]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@admin_bp.route('/api/merchant_applications/<int:application_id>/status', methods=['PATCH'])
@roles_required(ROLE_ADMIN)
def update_application_status(user, application_id):
    """Approve or reject a merchant application"""
    try:
        application = db.session.get(MerchantApplication, application_id)
        if not application:
            return jsonify({'error': 'Application not found'}), 404

        data = request.get_json(silent=True) or {}
        status = data.get('status')

        if application.status == APPLICATION_REJECTED and status in (APPLICATION_APPROVED, APPLICATION_REJECTED):
            return jsonify({'error': 'Application was already rejected'}), 409

        if status == APPLICATION_APPROVED:
            result = accounts.approve_application(application.email, data.get('password'),
                                                  application=application)
            email_sent = True
            try:
                NotificationService().send_approval_email(application.email, application.store_name)
            except Exception as e:
                current_app.logger.warning(f"Approval email failed for {application.email}: {e}")
                email_sent = False
            db.session.refresh(application)
            return jsonify({
                'success': True,
                'application': application.to_dict(),
                'store_id': result['store_id'],
                'email_sent': email_sent
            }), 200

        if status == APPLICATION_REJECTED:
            accounts.reject_application(application, data.get('reason'))
            return jsonify({
                'success': True,
                'application': application.to_dict()
            }), 200

        return jsonify({'error': f'Invalid status: {status}'}), 400

    except AccountError as e:
        db.session.rollback()
        return jsonify({'error': e.message}), e.status_code
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@admin_bp.route('/api/merchant_applications/<int:application_id>', methods=['DELETE'])
@roles_required(ROLE_ADMIN)
def delete_application(user, application_id):
    """Delete the applicant's account along with their store data"""
    try:
        application = db.session.get(MerchantApplication, application_id)
        if not application:
            return jsonify({'error': 'Application not found'}), 404

        accounts.delete_staff_account(application.email)
        return jsonify({'success': True}), 200

    except AccountError as e:
        db.session.rollback()
        return jsonify({'error': e.message}), e.status_code
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@admin_bp.route('/api/admin/review-reports', methods=['GET'])
@roles_required(ROLE_ADMIN)
def list_review_reports(user):
    try:
        query = ReviewReport.query
        status = request.args.get('status')
        if status:
            query = query.filter_by(status=status)
        reports = query.order_by(ReviewReport.created_at.desc(), ReviewReport.id.desc()).all()
        return jsonify([report.to_dict() for report in reports]), 200

    except Exception as e:
        return jsonify({'error': str(e)}), 500


@admin_bp.route('/api/admin/review-reports/<int:report_id>', methods=['PATCH'])
@roles_required(ROLE_ADMIN)
def update_review_report(user, report_id):
    try:
        report = db.session.get(ReviewReport, report_id)
        if not report:
            return jsonify({'error': 'Report not found'}), 404

        status = (request.get_json(silent=True) or {}).get('status')
        if status not in REPORT_STATUSES:
            return jsonify({'error': f'Invalid status: {status}'}), 400

        report.status = status
        db.session.commit()
        return jsonify(report.to_dict()), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@admin_bp.route('/api/admin/reviews/<int:review_id>', methods=['DELETE'])
@roles_required(ROLE_ADMIN)
def delete_review(user, review_id):
    """Remove a review and the reports filed against it"""
    try:
        review = db.session.get(Rating, review_id)
        if not review:
            return jsonify({'error': 'Review not found'}), 404

        ReviewReport.query.filter_by(review_id=review.id).delete(synchronize_session=False)
        db.session.delete(review)
        db.session.commit()
        return jsonify({'success': True}), 200

    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500
