# backend/models/order.py

from datetime import datetime
from .base import db


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    customer = db.Column(db.String(200), nullable=False)
    fabric_id = db.Column(db.Integer, db.ForeignKey('fabrics.id'), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # kg
    machine_id = db.Column(db.Integer, db.ForeignKey('machines.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    fabric = db.relationship('Fabric')

    def to_dict(self):
        return {
            'id': self.id,
            'customer': self.customer,
            'fabric': self.fabric_id,
            'fabric_name': self.fabric.name if self.fabric else None,
            'amount': self.amount,
            'machine': self.machine_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
