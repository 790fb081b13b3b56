import os
import datetime
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///carebase.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_ACCESS_TOKEN_EXPIRES = datetime.timedelta(hours=1)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Patient list paging
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "10 per minute")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # flask-restx
    RESTX_ERROR_404_HELP = False
    RESTX_MASK_SWAGGER = False

class DevConfig(Config):
    DEBUG = True
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

class ProdConfig(Config):
    DEBUG = False

class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    RATELIMIT_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    LOG_LEVEL = "WARNING"
