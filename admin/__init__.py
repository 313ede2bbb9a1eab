# ✅ admin sub blueprints, all mounted under /admin by create_app
from .demoday import admin_demoday_bp
from .promote import admin_promote_bp
from .admin_logs import admin_logs_bp

admin_blueprints = (
    admin_demoday_bp,
    admin_promote_bp,
    admin_logs_bp,
)
