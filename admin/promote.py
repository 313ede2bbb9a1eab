from flask import Blueprint, current_app, g, jsonify, send_file

from admin.auth import role_required
from workflow.finalists import select_finalists
from workflow.results import compute_results, declare_winners, export_results
from workflow.types import ROLE_ADMIN

admin_promote_bp = Blueprint('admin_promote', __name__)


# ✅ reset and reselect finalists from popular votes
@admin_promote_bp.route('/demodays/<int:demoday_id>/finalists/auto-select', methods=['POST'],
                        endpoint='auto_select_finalists')
@role_required(ROLE_ADMIN)
def auto_select_finalists(demoday_id):
    results = select_finalists(demoday_id, g.actor)
    return jsonify({
        'message': 'Finalists selected',
        'total_finalists': sum(r.selected_finalists for r in results),
        'categories': [r.to_dict() for r in results],
    })


# ✅ persist the top finalist of each category as winner
@admin_promote_bp.route('/demodays/<int:demoday_id>/winners', methods=['POST'], endpoint='declare_winners')
@role_required(ROLE_ADMIN)
def declare_winners_view(demoday_id):
    declared = declare_winners(
        demoday_id, g.actor,
        role_weights=current_app.config.get('FINAL_VOTE_ROLE_WEIGHTS'),
    )
    return jsonify({'message': f'{len(declared)} winner(s) declared', 'winners': declared})


# ✅ xlsx export of the ranking
@admin_promote_bp.route('/demodays/<int:demoday_id>/results/export', endpoint='export_results')
@role_required(ROLE_ADMIN)
def export_results_view(demoday_id):
    results = compute_results(demoday_id, current_app.config.get('FINAL_VOTE_ROLE_WEIGHTS'))
    output = export_results(results)
    return send_file(
        output,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        download_name=f"results_demoday_{results.demoday_id}.xlsx",
        as_attachment=True
    )
