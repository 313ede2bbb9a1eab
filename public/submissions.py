from flask import Blueprint, g, jsonify, request

from admin.auth import login_required
from public.public_votes import resolve_demoday_id
from workflow.submissions import (
    delete_submission,
    enroll_project,
    submit_project,
    update_project,
)

submissions_bp = Blueprint('submissions', __name__, url_prefix='/api')


# ✅ new project + submission (phase 1)
@submissions_bp.route('/submissions', methods=['POST'], endpoint='submit_project')
@login_required
def submit_project_view():
    data = request.get_json(silent=True) or {}
    demoday_id = resolve_demoday_id(data)
    fields = {k: v for k, v in data.items() if k != 'demoday_id'}

    submission = submit_project(demoday_id, g.actor, fields)
    return jsonify({
        'message': 'Project submitted',
        'submission': submission.to_dict(),
        'project': submission.project.to_dict(),
    }), 201


# ✅ submit an existing project
@submissions_bp.route('/projects/<int:project_id>/submit', methods=['POST'], endpoint='enroll_project')
@login_required
def enroll_project_view(project_id):
    data = request.get_json(silent=True) or {}
    submission = enroll_project(project_id, resolve_demoday_id(data), g.actor)
    return jsonify({'message': 'Project submitted', 'submission': submission.to_dict()}), 201


@submissions_bp.route('/submissions/<int:submission_id>', methods=['DELETE'], endpoint='delete_submission')
@login_required
def delete_submission_view(submission_id):
    delete_submission(submission_id, g.actor)
    return jsonify({'message': 'Submission deleted'})


@submissions_bp.route('/projects/<int:project_id>', methods=['PUT'], endpoint='update_project')
@login_required
def update_project_view(project_id):
    project = update_project(project_id, g.actor, request.get_json(silent=True) or {})
    return jsonify({'message': 'Project updated', 'project': project.to_dict()})
