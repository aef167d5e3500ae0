"""
DEVELOPMENT ENTRY POINT

This is the canonical entry point for local development.
For production deployments, use: wsgi.py

Runs Flask development server with debug mode enabled.
"""
from journal_press.config import Config
from journal_press.logging_setup import setup_logging
from journal_web import create_app

config = Config.from_env()
setup_logging(config.LOG_DIR, config.LOG_LEVEL)
app = create_app(config)

if __name__ == "__main__":
    app.run(debug=True)
