import os
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))

class Config:
    # Secrets come from .env, never hardcoded in production
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-only-change-me'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'erasmus.db')

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    NOTIFICATION_RETENTION_DAYS = int(os.environ.get('NOTIFICATION_RETENTION_DAYS') or 30)
    PROGRAMS_PER_PAGE = int(os.environ.get('PROGRAMS_PER_PAGE') or 20)

class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
