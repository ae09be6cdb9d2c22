"""
Profile model: the session principal for customers, barbers and admins
"""
from models import db
from datetime import datetime
from flask_login import UserMixin

ROLES = ('customer', 'barber', 'admin')


class Profile(UserMixin, db.Model):
    """Marketplace account keyed by a verified email"""
    __tablename__ = 'profiles'

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(100), nullable=False, default='')
    email = db.Column(db.String(254), unique=True, nullable=False)
    role = db.Column(db.String(20), nullable=False, default='customer')
    avatar_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'full_name': self.full_name,
            'email': self.email,
            'role': self.role,
            'avatar_url': self.avatar_url,
        }

    def __repr__(self):
        return f'<Profile {self.email}>'
