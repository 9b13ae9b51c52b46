"""
EasyMind Console Backend
========================

Flask-based backend for the EasyMind admin console and teacher dashboard.

Structure:
- routes/: API route blueprints (admin, teacher, auth, content, live streams)
- services/: Screen logic (approval workflow, rosters, reports, aggregation)
- firebase.py / store.py: Firestore and Firebase Auth wiring
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
