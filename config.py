"""
Configuration for the Certificate Generator service
===================================================

Settings come from environment variables, optionally loaded from a
`.env` file in the working directory.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

# Development server settings
DEV_CONFIG = {
    'host': '0.0.0.0',
    'port': 3000,
    'debug': False,
    'threaded': True,
    'use_reloader': False
}

TRUTHY = ('true', '1', 'yes', 'on')


class ConfigError(RuntimeError):
    """Required configuration is missing."""


def _env_flag(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY


def get_data_dir():
    """Data directory from DATA_DIR, defaulting to ./data next to this file."""
    return os.environ.get('DATA_DIR') or str(BASE_DIR / 'data')


def load_app_config(overrides=None, use_dotenv=True):
    """Build the Flask config mapping from the environment.

    `overrides` wins over the environment. Raises ConfigError when the
    session secret or admin credentials are missing.
    """
    if use_dotenv:
        load_dotenv()
    overrides = dict(overrides or {})

    origins = os.environ.get('CORS_ORIGINS', '').strip()
    config = {
        'SECRET_KEY': os.environ.get('SESSION_SECRET') or os.environ.get('SECRET_KEY'),
        'ADMIN_USER': os.environ.get('ADMIN_USER'),
        'ADMIN_PASS': os.environ.get('ADMIN_PASS'),
        'DATA_DIR': get_data_dir(),
        'CORS_ORIGINS': [o.strip() for o in origins.split(',') if o.strip()] or '*',
        'SESSION_COOKIE_HTTPONLY': True,
        'SESSION_COOKIE_SAMESITE': 'Lax',
    }
    config.update(overrides)

    missing = [name for name, key in (('SESSION_SECRET', 'SECRET_KEY'),
                                      ('ADMIN_USER', 'ADMIN_USER'),
                                      ('ADMIN_PASS', 'ADMIN_PASS')) if not config.get(key)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")
    return config


def get_dev_config():
    """Returns development server configuration with environment overrides"""
    config = DEV_CONFIG.copy()

    # Override with environment variables if present
    if 'PORT' in os.environ:
        config['port'] = int(os.environ['PORT'])

    if 'FLASK_DEBUG' in os.environ:
        config['debug'] = _env_flag('FLASK_DEBUG')
        config['use_reloader'] = config['debug']

    if 'FLASK_HOST' in os.environ:
        config['host'] = os.environ['FLASK_HOST']

    return config


def print_startup_banner(config):
    """Print a helpful startup banner"""
    base = f"http://localhost:{config['port']}"
    print("=" * 70)
    print("🎓 CERTIFICATE GENERATOR API")
    print("=" * 70)
    print(f"🚀 Server: http://{config['host']}:{config['port']}")
    print(f"📡 API endpoint: {base}/api")
    print(f"❤️  Health check: {base}/api/health")
    print(f"🔧 Debug: {config['debug']}")
    print(f"📁 Directory: {os.getcwd()}")
    print("=" * 70)
    print("💡 Tips:")
    print("   • Press Ctrl+C to stop the server")
    print("   • Set FLASK_DEBUG=1 for debug mode")
    print("   • Set PORT=8000 for custom port")
    print("=" * 70)
