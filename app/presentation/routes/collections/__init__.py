from flask import Blueprint

collections_bp = Blueprint('collections', __name__)

# Import all route modules
from . import (  # noqa: E402,F401
    errors,
    requests,
    residents,
    points,
)
