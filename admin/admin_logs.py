from flask import Blueprint, request, Response, jsonify, stream_with_context
from sqlalchemy import or_
from datetime import datetime
import csv

from admin.auth import role_required
from models import OperationLog
from workflow.types import ROLE_ADMIN

admin_logs_bp = Blueprint('admin_logs', __name__)

LOG_COLUMNS = ['timestamp', 'user_type', 'user_id', 'action', 'ip_address']


def _parse_day(value):
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return None


# ---------------------------
# DataTables server-side API
# ---------------------------
@admin_logs_bp.route('/logs/data', endpoint='logs_data')
@role_required(ROLE_ADMIN)
def logs_data():
    draw   = request.args.get('draw', 1, type=int)
    start  = request.args.get('start', 0, type=int)
    length = request.args.get('length', 25, type=int)

    # filters
    user_type = request.args.get('user_type', '').strip()
    keyword   = request.args.get('keyword', '').strip()
    date_from = request.args.get('date_from', '').strip()
    date_to   = request.args.get('date_to', '').strip()

    # ordering
    order_column_index = request.args.get('order[0][column]', '0')
    order_dir = request.args.get('order[0][dir]', 'desc')
    if order_column_index.isdigit() and int(order_column_index) < len(LOG_COLUMNS):
        order_column = LOG_COLUMNS[int(order_column_index)]
    else:
        order_column = 'timestamp'

    q = OperationLog.query

    if user_type:
        q = q.filter(OperationLog.user_type == user_type)

    if keyword:
        like = f"%{keyword}%"
        q = q.filter(or_(
            OperationLog.action.ilike(like),
            OperationLog.ip_address.ilike(like)
        ))

    dt_from = _parse_day(date_from) if date_from else None
    if dt_from:
        q = q.filter(OperationLog.timestamp >= dt_from)

    dt_to = _parse_day(date_to) if date_to else None
    if dt_to:
        q = q.filter(OperationLog.timestamp <= dt_to.replace(hour=23, minute=59, second=59))

    total_records = OperationLog.query.count()
    filtered_records = q.count()

    col_attr = getattr(OperationLog, order_column)
    q = q.order_by(col_attr.desc() if order_dir == 'desc' else col_attr.asc())

    # DataTables sends length=-1 for "all"
    q = q.offset(max(start, 0))
    if length >= 0:
        q = q.limit(length)
    logs = q.all()

    data = []
    for log in logs:
        data.append([
            log.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            log.user_type,
            log.user_id,
            log.action,
            log.ip_address or ""
        ])

    return jsonify({
        'draw': draw,
        'recordsTotal': total_records,
        'recordsFiltered': filtered_records,
        'data': data
    })


# ---------------------------
# CSV export (everything)
# ---------------------------
@admin_logs_bp.route('/logs/export', endpoint='export_logs_csv')
@role_required(ROLE_ADMIN)
def export_logs_csv():
    q = OperationLog.query.order_by(OperationLog.timestamp.desc())

    class Echo:
        def write(self, value):
            return value

    def generate():
        writer = csv.writer(Echo())
        yield writer.writerow(["Time", "User type", "User ID", "Action", "IP"])
        for log in q:
            yield writer.writerow([
                log.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                log.user_type,
                log.user_id,
                log.action,
                log.ip_address or ""
            ])

    return Response(stream_with_context(generate()),
                    mimetype='text/csv',
                    headers={"Content-Disposition": "attachment; filename=operation_logs.csv"})
