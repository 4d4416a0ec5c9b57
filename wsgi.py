"""WSGI entry point for Crystal Budget application."""

import os
from app import create_app

# Create application instance
app = create_app(os.environ.get("APP_CONFIG", "production"))

if __name__ == "__main__":
    # For development only
    app.run(
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 5000)),
        debug=os.environ.get("FLASK_ENV") == "development"
    )
