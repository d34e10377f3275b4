"""
WSGI Entry Point for Production Deployment

This file serves as the entry point for WSGI servers (Gunicorn, uWSGI, etc.)
serving the job trigger and operations API.

Usage with Gunicorn:
    gunicorn wsgi:app
"""
import os

# Set production environment if not already set
if 'FLASK_ENV' not in os.environ:
    os.environ['FLASK_ENV'] = 'production'

# Import the Flask application factory
from opscore import create_app

# Create the application instance
app = create_app()

# This is the WSGI application object
application = app

if __name__ == "__main__":
    # This allows running the file directly for testing
    # In production, use a WSGI server like Gunicorn
    app.run(debug=True, host='0.0.0.0', port=5000)
