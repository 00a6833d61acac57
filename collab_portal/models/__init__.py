"""
Talking-Points Collaboration Portal
Shared SQLAlchemy instance used by every model module.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
