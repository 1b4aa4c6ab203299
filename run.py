#!/usr/bin/env python3
"""
Main entry point for running the MeetFlow booking API
"""

from app.main import create_app
import os

if __name__ == '__main__':
    config_name = os.environ.get('APP_CONFIG', 'development')

    app = create_app(config_name)

    print("Starting MeetFlow...")
    print("Availability API at: http://localhost:5001/api/availability")
    print("\nPress CTRL+C to stop the server")

    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', '5001')),
        debug=app.config.get('DEBUG', False),
        threaded=True
    )
