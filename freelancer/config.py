import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))
DATA_DIR = os.path.join(basedir, "../data")


def _to_int(val, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-key-change-in-production')

    # Session tokens
    JWT_SECRET = os.getenv('JWT_SECRET') or SECRET_KEY
    JWT_ALGORITHM = "HS256"
    JWT_TTL_DAYS = _to_int(os.getenv('JWT_TTL_DAYS'), 7)

    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        f'sqlite:///{os.path.join(DATA_DIR, "freelancer.db")}'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Login throttle: 5 failed attempts per client address per 10 minutes
    LOGIN_MAX_ATTEMPTS = _to_int(os.getenv('LOGIN_MAX_ATTEMPTS'), 5)
    LOGIN_WINDOW_SECONDS = _to_int(os.getenv('LOGIN_WINDOW_SECONDS'), 600)

    # Two-factor
    TOTP_ISSUER = os.getenv('TOTP_ISSUER', 'Freelancer-App')
    TOTP_VALID_WINDOW = _to_int(os.getenv('TOTP_VALID_WINDOW'), 1)

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET = 'test-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
