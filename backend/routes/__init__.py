"""
Routes package for the Butterfly Showroom API.

Each module exposes one Flask blueprint; app.create_app registers them in
the order listed in BLUEPRINTS.
"""

BLUEPRINTS = [
    ('routes.fabrics', 'fabrics_bp', '/api/fabrics'),
    ('routes.machines', 'machines_bp', '/api/machines'),
    ('routes.orders', 'orders_bp', '/api/orders'),
    ('routes.imports', 'imports_bp', '/api/imports'),
    ('routes.health', 'health_bp', '/api'),
]
