from flask import Blueprint, current_app, g, jsonify, request

from admin.auth import login_required
from workflow.errors import NotFound, ValidationError
from workflow.ledger import cast_vote, count_votes, find_votes, remove_vote
from workflow.phases import describe_current_phase
from workflow.results import compute_results
from workflow.store import get_active_demoday
from workflow.types import VOTE_FINAL, VOTE_POPULAR

public_votes_bp = Blueprint('public_votes', __name__, url_prefix='/api')


# helper: demoday from the payload, or the active one
def resolve_demoday_id(data):
    demoday_id = data.get('demoday_id')
    if demoday_id is not None:
        return demoday_id
    demoday = get_active_demoday()
    if demoday is None:
        raise NotFound("No active demoday")
    return demoday.id


# ✅ current phase of the active demoday
@public_votes_bp.route('/phases/current', endpoint='current_phase')
def current_phase():
    return jsonify(describe_current_phase())


# ✅ public results
@public_votes_bp.route('/demodays/<int:demoday_id>/results', endpoint='demoday_results')
def demoday_results(demoday_id):
    results = compute_results(demoday_id, current_app.config.get('FINAL_VOTE_ROLE_WEIGHTS'))
    return jsonify(results.to_dict())


# ✅ cast a vote
@public_votes_bp.route('/votes', methods=['POST'], endpoint='cast_vote')
@login_required
def cast_vote_view():
    data = request.get_json(silent=True) or {}
    if data.get('project_id') is None:
        raise ValidationError("project_id is required")

    vote = cast_vote(
        g.actor,
        data['project_id'],
        resolve_demoday_id(data),
        data.get('vote_phase', VOTE_POPULAR),
    )
    return jsonify({'message': 'Vote registered', 'vote': vote.to_dict()}), 201


# ✅ remove a vote
@public_votes_bp.route('/votes/<int:project_id>', methods=['DELETE'], endpoint='remove_vote')
@login_required
def remove_vote_view(project_id):
    vote_phase = request.args.get('vote_phase', VOTE_POPULAR)
    remove_vote(g.actor.id, project_id, vote_phase)
    return jsonify({'message': 'Vote removed'})


# ✅ has the current user voted for this project
@public_votes_bp.route('/votes/check/<int:project_id>', endpoint='check_vote')
@login_required
def check_vote(project_id):
    votes = find_votes(g.actor.id, project_id)
    return jsonify({
        'has_voted': bool(votes),
        'votes': [v.to_dict() for v in votes],
    })


# ✅ vote counters of one project
@public_votes_bp.route('/projects/<int:project_id>/votes', endpoint='project_votes')
def project_votes(project_id):
    demoday_id = request.args.get('demoday_id', type=int)
    return jsonify({
        'project_id': project_id,
        'popular': count_votes(project_id, VOTE_POPULAR, demoday_id),
        'final': count_votes(project_id, VOTE_FINAL, demoday_id),
    })
