from flask import Blueprint

telegram_bp = Blueprint('telegram', __name__, url_prefix='/telegram')

# Import routes to register them
from . import routes
