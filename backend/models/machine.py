# backend/models/machine.py

from datetime import datetime
from .base import db

MACHINE_TYPES = ('Single', 'Double', 'Interlock', 'Fleece')

# Machines usable for each fabric. The fabric side reads this through the
# `machines` backref, so the link is stored once.
machine_fabrics = db.Table(
    'machine_fabrics',
    db.Column('machine_id', db.Integer, db.ForeignKey('machines.id'), primary_key=True),
    db.Column('fabric_id', db.Integer, db.ForeignKey('fabrics.id'), primary_key=True),
)


class Machine(db.Model):
    __tablename__ = 'machines'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), nullable=True)
    dia_gauge = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    fabrics = db.relationship(
        'Fabric',
        secondary=machine_fabrics,
        backref=db.backref('machines', lazy=True, order_by='Machine.id'),
        lazy=True,
        order_by='Fabric.id',
    )
    orders = db.relationship('Order', backref='machine', lazy=True, order_by='Order.id')

    def to_dict(self):
        return {
            'id': self.id,
            'Name': self.name,
            'Type': self.type,
            'Dia_Gauge': self.dia_gauge,
            'Fabrics': [fabric.id for fabric in self.fabrics],
            'Orders': [order.id for order in self.orders],
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Machine id={self.id} name={self.name} type={self.type}>'
