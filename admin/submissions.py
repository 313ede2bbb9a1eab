from flask import Blueprint, g, jsonify, request

from admin.auth import login_required
from workflow.errors import ValidationError
from workflow.transitions import change_status

admin_submissions_bp = Blueprint('admin_submissions', __name__)


# Role and phase checks live in the transition rules, so any logged-in user may ask
@admin_submissions_bp.route('/submissions/<int:submission_id>/status', methods=['PATCH'],
                            endpoint='change_status')
@login_required
def change_status_view(submission_id):
    data = request.get_json(silent=True) or {}
    status = data.get('status')
    if not status:
        raise ValidationError("status is required")

    submission = change_status(submission_id, status, g.actor)
    return jsonify({'message': 'Status updated', 'submission': submission.to_dict()})
