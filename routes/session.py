"""
Session routes: the signed-in profile is loaded per request by Flask-Login
(user_loader in app.py) and saved only through login_user / logout_user here.
"""
from flask import Blueprint, jsonify
from flask_login import current_user, login_required, login_user, logout_user

from models import db
from models.profile import Profile
from utils.change_feed import get_change_feed

session_bp = Blueprint('session', __name__, url_prefix='/api')


def start_verified_session(email):
    """Sign in the profile for a just-verified email, creating a customer profile if needed."""
    profile = Profile.query.filter_by(email=email).first()
    if profile is None:
        profile = Profile(email=email, full_name=email.split('@')[0], role='customer')
        db.session.add(profile)
        db.session.commit()
        feed = get_change_feed()
        if feed is not None:
            feed.publish('profiles', 'INSERT', profile.to_dict())
    login_user(profile, remember=True)
    return profile


@session_bp.route('/session', methods=['GET'])
def get_session():
    """Current session profile, or 401 when nobody is signed in."""
    if not current_user.is_authenticated:
        return jsonify({"authenticated": False}), 401
    return jsonify({"authenticated": True, "profile": current_user.to_dict()})


@session_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})
