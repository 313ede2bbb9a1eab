# run_server.py
import os
import sys
import socket

from waitress import serve

# -------------------------------------------------
# Local IP (printed as a hint)
# -------------------------------------------------
def get_local_ip():
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"

# -------------------------------------------------
# Paths when frozen with PyInstaller
# -------------------------------------------------
def get_runtime_base_dir():
    if getattr(sys, "frozen", False):  # PyInstaller
        return os.path.dirname(sys.executable)
    return os.path.abspath(os.path.dirname(__file__))

BASE_DIR = get_runtime_base_dir()
INSTANCE_DIR = os.path.join(BASE_DIR, "instance")
os.makedirs(INSTANCE_DIR, exist_ok=True)

# -------------------------------------------------
# Environment read by config.py
# -------------------------------------------------
os.environ.setdefault("SECRET_KEY", "change-me-in-production")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(INSTANCE_DIR, 'demoday.db')}")
PORT = int(os.getenv("PORT", "5000"))

# -------------------------------------------------
# Flask app
# -------------------------------------------------
from app import create_app, silence_werkzeug
from models import db
from workflow.events import finish_expired_demodays

app = create_app()

def bootstrap_first_run():
    """Create the tables and close demodays that ended while the server was down"""
    with app.app_context():
        db.create_all()
        for item in finish_expired_demodays():
            print(f"✅ Demoday {item['id']} ({item['name']}) finished")

def run():
    ip = get_local_ip()
    print("🚀 Starting server...")
    print(f"   Open → http://127.0.0.1:{PORT}/api/phases/current")
    print(f"   On the local network → http://{ip}:{PORT}")

    silence_werkzeug()
    serve(app, host="0.0.0.0", port=PORT)

if __name__ == "__main__":
    bootstrap_first_run()
    run()
