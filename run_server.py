#!/usr/bin/env python3
"""
Flask Application Runner
========================

Main entry point for running the Certificate Generator API.

Usage:
    python run_server.py           # Run with default settings
    python run_server.py --debug   # Run in debug mode
    python run_server.py --port 8000  # Run on custom port

Environment Variables:
    PORT            - Server port (default: 3000)
    FLASK_DEBUG     - Enable debug mode (default: False)
    SESSION_SECRET  - Session signing key (required)
    ADMIN_USER      - Admin username (required)
    ADMIN_PASS      - Admin password (required)
    DATA_DIR        - Where students.csv and references.json live (default: ./data)
"""

import sys
import argparse
import logging
from pathlib import Path


def setup_environment():
    """Ensure the app directory is in the Python path"""
    app_dir = Path(__file__).parent
    if str(app_dir) not in sys.path:
        sys.path.insert(0, str(app_dir))


def main(argv=None):
    """Main entry point for the Flask application"""
    parser = argparse.ArgumentParser(description='Run the Certificate Generator API')
    parser.add_argument('--port', type=int, default=None, help='Port to run on')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--host', default=None, help='Host to bind to')

    args = parser.parse_args(argv)

    setup_environment()

    from config import ConfigError, get_dev_config, print_startup_banner

    config = get_dev_config()
    if args.port:
        config['port'] = args.port
    if args.host:
        config['host'] = args.host
    if args.debug:
        config['debug'] = True
        config['use_reloader'] = True

    logging.basicConfig(
        level=logging.DEBUG if config['debug'] else logging.INFO,
        format='%(asctime)s %(levelname)s %(message)s',
    )

    try:
        from app import create_app
        app = create_app()
    except ConfigError as e:
        print(f"❌ Error: {e}")
        print("📝 Please check your .env file and ensure these variables are set")
        sys.exit(1)

    print_startup_banner(config)

    # Print the route map to help diagnose 404s
    rules = sorted(f"{r.rule} -> {','.join(sorted(r.methods - {'HEAD', 'OPTIONS'}))}" for r in app.url_map.iter_rules())
    print("🔎 Registered routes:")
    for line in rules:
        print("  •", line)

    try:
        app.run(
            host=config['host'],
            port=config['port'],
            debug=config['debug'],
            threaded=config['threaded'],
            use_reloader=config['use_reloader']
        )
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")


if __name__ == '__main__':
    main()
