"""
Main Flask application entry point for the salon booking backend
"""
import logging
import os

from flask import Flask, jsonify, request
from flask_login import LoginManager
from config import Config
from models import db
from models.profile import Profile
from utils.change_feed import init_change_feed
from utils.mail import mail

# Initialize login manager (no DB access at import time)
login_manager = LoginManager()


@login_manager.user_loader
def load_user(profile_id):
    """Load the session profile for Flask-Login (runs in request context)."""
    return db.session.get(Profile, int(profile_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"authenticated": False, "error": "Authentication required"}), 401


def create_app(config_class=Config):
    """Application factory pattern. DB init runs inside app_context; non-fatal on failure."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    init_change_feed(app)

    @app.errorhandler(405)
    def handle_405_error(e):
        if request.path == "/api/verify-otp":
            return jsonify({"success": False, "error": "Method not allowed"}), 405
        if request.path.startswith("/api/"):
            return jsonify({"error": "Method not allowed"}), 405
        return e

    @app.errorhandler(500)
    def handle_500_error(e):
        if request.path.startswith("/api/"):
            return jsonify({"success": False, "error": "Internal server error. Please try again later."}), 500
        return e

    # Create tables only inside app context; do not crash if DB temporarily unavailable
    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            logging.getLogger(__name__).warning("Database init skipped (non-fatal): %s", e)

    from routes import otp_bp, session_bp

    app.register_blueprint(otp_bp)
    app.register_blueprint(session_bp)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


# WSGI entry point (Railway/Render/cPanel): gunicorn app:app
app = create_app()
application = app

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "false").lower() in ("true", "1"))
