#!/usr/bin/env python3
"""
Network What-If Dashboard - Main Application Entry Point
Flask application for modelling supply networks and stress-testing them.

Companies are kept in a JSON store; an empty store is seeded with the
sample networks on first request. Use populate_store.py to seed or check it.
"""

import os
from network_dashboard import create_app

# Create Flask application
app = create_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 8080))
    debug = os.getenv('FLASK_DEBUG', 'false').lower() == 'true'

    print(f"Network What-If Dashboard")
    print(f"Running on port {port}")
    print(f"Company store: {app.config['COMPANY_STORE_PATH']}")

    app.run(
        host='0.0.0.0',
        port=port,
        debug=debug
    )
