# backend/models/__init__.py

from .base import db

# Fabric first: the machine association table and Order both point at it.
from .fabric import Fabric, GALLERY_FIELDS
from .machine import Machine, MACHINE_TYPES, machine_fabrics
from .order import Order

__all__ = [
    'db',
    'Fabric',
    'GALLERY_FIELDS',
    'Machine',
    'MACHINE_TYPES',
    'machine_fabrics',
    'Order',
]
