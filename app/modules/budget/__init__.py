from flask import Blueprint

budget_bp = Blueprint('budget', __name__, url_prefix='/api')

# Import routes to register them
from . import routes
