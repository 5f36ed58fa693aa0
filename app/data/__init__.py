"""
Data layer: Flask-SQLAlchemy models
"""
