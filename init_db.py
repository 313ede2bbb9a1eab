# init_db.py
from app import create_app
from models import db, Demoday

app = create_app()

with app.app_context():
    db.create_all()
    print("✅ Database created with every table from models.py")

    if Demoday.query.count() == 0:
        print("ℹ️ No demoday yet: create one with POST /admin/demodays")
    else:
        active = Demoday.query.filter_by(active=True).first()
        print(f"ℹ️ Active demoday: {active.name if active else 'none'}")
