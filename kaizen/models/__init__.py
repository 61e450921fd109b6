"""
Kaizen Idea Tracker
Shared SQLAlchemy handle.

The ``db`` extension is bound to an application in ``create_app`` via
``db.init_app(app)``; services receive ``db.session`` explicitly.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
