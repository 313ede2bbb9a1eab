import os
import logging

import click
from flask import Flask, jsonify, request, session
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from utils.helpers import (
    add_log,
    action_from_request,
    get_request_user,
    should_log_request
)
from workflow.errors import WorkflowError

migrate = Migrate()

# -------------------------------------------------
# Silence werkzeug request lines for noisy paths
# -------------------------------------------------
def silence_werkzeug(noisy_paths=None):
    if noisy_paths is None:
        noisy_paths = ("/admin/logs/data", "/static/", "/favicon.ico", "/healthz")

    class EndpointFilter(logging.Filter):
        def __init__(self, paths):
            super().__init__()
            self.paths = paths

        def filter(self, record: logging.LogRecord) -> bool:
            return not any(p in record.getMessage() for p in self.paths)

    wlog = logging.getLogger("werkzeug")
    for h in wlog.handlers:
        h.addFilter(EndpointFilter(noisy_paths))


# -------------------------------------------------
# Operation log: endpoints never recorded
# -------------------------------------------------
EXCLUDE_ENDPOINTS = {
    "admin_logs.logs_data",
    "admin_logs.export_logs_csv",
}


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    migrate.init_app(app, db)

    register_blueprints(app)
    register_error_handlers(app)
    register_request_log(app)
    register_commands(app)

    # health check (Render)
    @app.route("/healthz")
    def healthz():
        return "OK", 200

    return app


# -------------------------------------------------
# Blueprints
# -------------------------------------------------
def register_blueprints(app):
    from admin import admin_blueprints
    from admin.evaluations import evaluations_bp
    from admin.submissions import admin_submissions_bp
    from public.public_votes import public_votes_bp
    from public.submissions import submissions_bp

    for bp in admin_blueprints:
        app.register_blueprint(bp, url_prefix='/admin')
    app.register_blueprint(public_votes_bp)
    app.register_blueprint(submissions_bp)
    app.register_blueprint(evaluations_bp)
    app.register_blueprint(admin_submissions_bp, url_prefix='/api')


# -------------------------------------------------
# Errors: workflow errors become JSON 4xx, the rest a logged 500
# -------------------------------------------------
def register_error_handlers(app):
    @app.errorhandler(WorkflowError)
    def handle_workflow_error(err):
        return jsonify(err.to_dict()), err.http_status

    @app.errorhandler(404)
    def handle_not_found(err):
        return jsonify({"error": "Not found", "code": "not_found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(err):
        return jsonify({"error": "Method not allowed", "code": "method_not_allowed"}), 405

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        if isinstance(err, HTTPException):
            return jsonify({"error": err.description, "code": err.name.lower().replace(" ", "_")}), err.code
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "code": "internal_error"}), 500


# -------------------------------------------------
# Automatic operation log for mutating requests
# -------------------------------------------------
def register_request_log(app):
    @app.before_request
    def auto_log_post_requests():
        if not should_log_request(request,
                                  exclude_prefixes=app.config.get("LOG_EXCLUDE_PREFIXES", ("/static",)),
                                  exclude_endpoints=EXCLUDE_ENDPOINTS):
            return
        user_type, user_id = get_request_user(session)
        action = action_from_request(request)
        try:
            add_log(user_type, user_id, action)
        except Exception as e:
            db.session.rollback()
            app.logger.warning(f"⚠️ Could not write operation log: {e}")


# -------------------------------------------------
# CLI commands
# -------------------------------------------------
def register_commands(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create every table declared in models.py"""
        db.create_all()
        click.echo("✅ Database tables created")

    @app.cli.command("check-finished")
    def check_finished_command():
        """Mark demodays whose last phase has ended as finished"""
        from workflow.events import finish_expired_demodays

        finished = finish_expired_demodays()
        if not finished:
            click.echo("ℹ️ No demoday to finish")
        for item in finished:
            click.echo(f"✅ Demoday {item['id']} ({item['name']}) finished")


# -------------------------------------------------
# Start (development server)
# -------------------------------------------------
if __name__ == '__main__':
    app = create_app()
    debug = os.getenv("FLASK_DEBUG") == "1"
    if debug:
        silence_werkzeug()
    else:
        logging.getLogger("werkzeug").setLevel(logging.ERROR)
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)), debug=debug)
