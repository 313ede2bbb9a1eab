from flask import Blueprint, g, jsonify, request

from admin.auth import role_required
from public.public_votes import resolve_demoday_id
from workflow.store import get_demoday
from workflow.transitions import evaluation_report, pending_evaluations, submit_evaluation
from workflow.types import REVIEWER_ROLES

evaluations_bp = Blueprint('evaluations', __name__, url_prefix='/api')


# ✅ submissions still waiting for this reviewer
@evaluations_bp.route('/evaluations/pending', endpoint='pending_evaluations')
@role_required(*REVIEWER_ROLES)
def pending_evaluations_view():
    demoday = get_demoday(resolve_demoday_id(request.args))
    submissions = pending_evaluations(demoday.id, g.actor.id)
    return jsonify({
        'demoday': demoday.to_dict(),
        'criteria': [c.to_dict() for c in demoday.criteria],
        'submissions': [
            dict(s.to_dict(), project=s.project.to_dict()) for s in submissions
        ],
    })


# ✅ one reviewer's verdict
@evaluations_bp.route('/submissions/<int:submission_id>/evaluation', methods=['POST'],
                      endpoint='submit_evaluation')
@role_required(*REVIEWER_ROLES)
def submit_evaluation_view(submission_id):
    data = request.get_json(silent=True) or {}
    evaluation = submit_evaluation(submission_id, g.actor, data.get('scores'))
    return jsonify({
        'message': 'Evaluation saved',
        'evaluation': evaluation.to_dict(),
        'submission_status': evaluation.submission.status,
    }), 201


# ✅ screening audit: every evaluation of the demoday, per submission
@evaluations_bp.route('/demodays/<int:demoday_id>/evaluations/report',
                      endpoint='evaluation_report')
@role_required(*REVIEWER_ROLES)
def evaluation_report_view(demoday_id):
    return jsonify(evaluation_report(demoday_id))
