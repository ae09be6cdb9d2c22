"""
cPanel / Passenger WSGI entry point for the salon booking API.
Passenger imports 'application' from this file.
"""
import sys
import os

# Project root must be importable for 'app', 'models', 'routes', 'utils'
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app import application  # noqa: E402,F401
