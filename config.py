import os

from workflow.types import DEFAULT_FINAL_VOTE_WEIGHTS


def normalize_database_url(db_url):
    # Render / Heroku hand out postgres://, psycopg3 wants postgresql+psycopg://
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql+psycopg://", 1)
    elif db_url.startswith("postgresql://") and not db_url.startswith("postgresql+psycopg://"):
        db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)

    # Neon's channel_binding parameter drops psycopg connections
    if "channel_binding" in db_url:
        db_url = db_url.replace("&channel_binding=require", "")
    return db_url


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-me-in-production'
    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.environ.get('DATABASE_URL', 'sqlite:///demoday.db')
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }

    # Weight of a final-phase vote by the voter's role at cast time
    FINAL_VOTE_ROLE_WEIGHTS = dict(DEFAULT_FINAL_VOTE_WEIGHTS)

    # Requests on these paths are not written to the operation log
    LOG_EXCLUDE_PREFIXES = ("/static",)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
