from flask import Blueprint, g, jsonify, request

from admin.auth import role_required
from workflow.events import (
    activate_demoday,
    add_category,
    add_criteria,
    cancel_demoday,
    create_demoday,
    finish_expired_demodays,
    replace_phases,
)
from workflow.types import ROLE_ADMIN

admin_demoday_bp = Blueprint('admin_demoday', __name__)


# ✅ new demoday with its phases
@admin_demoday_bp.route('/demodays', methods=['POST'], endpoint='create_demoday')
@role_required(ROLE_ADMIN)
def create_demoday_view():
    data = request.get_json(silent=True) or {}
    demoday = create_demoday(
        g.actor,
        data.get('name'),
        data.get('phases'),
        data.get('max_finalists', 10),
    )
    return jsonify({
        'message': 'Demoday created',
        'demoday': demoday.to_dict(),
        'phases': [p.to_dict() for p in demoday.phases],
    }), 201


@admin_demoday_bp.route('/demodays/<int:demoday_id>/phases', methods=['PUT'], endpoint='replace_phases')
@role_required(ROLE_ADMIN)
def replace_phases_view(demoday_id):
    data = request.get_json(silent=True) or {}
    demoday = replace_phases(demoday_id, g.actor, data.get('phases'))
    return jsonify({
        'message': 'Phases updated',
        'phases': [p.to_dict() for p in demoday.phases],
    })


@admin_demoday_bp.route('/demodays/<int:demoday_id>/activate', methods=['POST'], endpoint='activate_demoday')
@role_required(ROLE_ADMIN)
def activate_demoday_view(demoday_id):
    demoday = activate_demoday(demoday_id, g.actor)
    return jsonify({'message': 'Demoday activated', 'demoday': demoday.to_dict()})


@admin_demoday_bp.route('/demodays/<int:demoday_id>', methods=['DELETE'], endpoint='cancel_demoday')
@role_required(ROLE_ADMIN)
def cancel_demoday_view(demoday_id):
    cancel_demoday(demoday_id, g.actor)
    return jsonify({'message': 'Demoday canceled'})


# ✅ close demodays whose last phase is over
@admin_demoday_bp.route('/demodays/check-finished', methods=['POST'], endpoint='check_finished')
@role_required(ROLE_ADMIN)
def check_finished():
    finished = finish_expired_demodays()
    return jsonify({'finished_count': len(finished), 'finished_demodays': finished})


@admin_demoday_bp.route('/demodays/<int:demoday_id>/categories', methods=['POST'], endpoint='add_category')
@role_required(ROLE_ADMIN)
def add_category_view(demoday_id):
    data = request.get_json(silent=True) or {}
    category = add_category(
        demoday_id,
        g.actor,
        data.get('name'),
        data.get('max_finalists', 5),
        data.get('description'),
    )
    return jsonify({'message': 'Category created', 'category': category.to_dict()}), 201


@admin_demoday_bp.route('/demodays/<int:demoday_id>/criteria', methods=['POST'], endpoint='add_criteria')
@role_required(ROLE_ADMIN)
def add_criteria_view(demoday_id):
    data = request.get_json(silent=True) or {}
    criteria = add_criteria(demoday_id, g.actor, data.get('criteria'))
    return jsonify({
        'message': f'{len(criteria)} criteria created',
        'criteria': [c.to_dict() for c in criteria],
    }), 201
