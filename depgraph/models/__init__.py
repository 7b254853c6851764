"""
Roadmap Dependency Graph Engine
Shared Flask-SQLAlchemy handle.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
