"""
WSGI entry point for the meter billing API.

Point any WSGI server at ``application:application``; run this file directly
for a local server on HOST/PORT (defaults 127.0.0.1:5000).
"""
import os

from backend.app import app as application

if __name__ == "__main__":
    application.run(
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "5000")),
        debug=os.getenv("FLASK_DEBUG", "false").lower() == "true",
    )
