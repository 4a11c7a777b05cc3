"""
Application configuration.

Every setting has one canonical environment variable. Older deployments used
other names for some of them; those are listed after the canonical name and
consulted only when it is unset.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def env_first(*names, default=None):
    """Return the first non-empty value among the given environment variables."""
    for name in names:
        value = os.environ.get(name)
        if value is not None and value.strip() != '':
            return value.strip()
    return default


def env_flag(*names, default='false'):
    return str(env_first(*names, default=default)).lower() in ('1', 'true', 'yes', 'on')


# --- Database ---
SQLALCHEMY_DATABASE_URI = env_first('SQLALCHEMY_DATABASE_URI', 'DATABASE_URL',
                                    default='sqlite:////data/instance/trackvault.db')
SECRET_KEY = env_first('SECRET_KEY', default='default-dev-key-change-in-production')

# --- Object storage ---
FILE_STORAGE_BACKEND = (env_first('FILE_STORAGE_BACKEND', default='local') or 'local').lower()
UPLOAD_FOLDER = env_first('UPLOAD_FOLDER', default='/data/uploads')
STORAGE_BUCKET = env_first('STORAGE_BUCKET', 'SUPABASE_BUCKET', default='music-files')

S3_ENDPOINT_URL = env_first('S3_ENDPOINT_URL', 'SUPABASE_S3_ENDPOINT')
S3_REGION = env_first('S3_REGION', 'AWS_REGION', 'AWS_DEFAULT_REGION')
S3_ACCESS_KEY_ID = env_first('S3_ACCESS_KEY_ID', 'AWS_ACCESS_KEY_ID')
S3_SECRET_ACCESS_KEY = env_first('S3_SECRET_ACCESS_KEY', 'AWS_SECRET_ACCESS_KEY')
S3_SESSION_TOKEN = env_first('S3_SESSION_TOKEN', 'AWS_SESSION_TOKEN')
S3_USE_PATH_STYLE = env_flag('S3_USE_PATH_STYLE', default='false')
S3_VERIFY_SSL = env_flag('S3_VERIFY_SSL', default='true')
S3_PRESIGN_TTL_SECONDS = int(env_first('S3_PRESIGN_TTL_SECONDS', default='3600'))

# --- Audio delivery ---
# direct: fetch bytes server-side; redirect: 302 to a signed URL;
# proxy: stream the signed URL through this server, forwarding Range.
AUDIO_DELIVERY_MODE = (env_first('AUDIO_DELIVERY_MODE', default='direct') or 'direct').lower()
UPSTREAM_TIMEOUT_SECONDS = float(env_first('UPSTREAM_TIMEOUT_SECONDS', default='30'))

# --- Uploads ---
MAX_UPLOAD_MB = int(env_first('MAX_UPLOAD_MB', default='50'))

# --- Logging / limits ---
LOG_LEVEL = (env_first('LOG_LEVEL', default='INFO') or 'INFO').upper()
RATE_LIMIT_DEFAULTS = [
    part.strip()
    for part in (env_first('RATE_LIMIT_DEFAULTS', default='5000 per day;1000 per hour') or '').split(';')
    if part.strip()
]

DELIVERY_MODES = ('direct', 'redirect', 'proxy')


def initialize_config(app):
    """Copy configuration onto the Flask app and log the effective storage setup."""
    from trackvault.config.version import get_version

    app.config['SQLALCHEMY_DATABASE_URI'] = SQLALCHEMY_DATABASE_URI
    app.config['SECRET_KEY'] = SECRET_KEY
    app.config['UPLOAD_FOLDER'] = UPLOAD_FOLDER
    app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024
    app.config['AUDIO_DELIVERY_MODE'] = AUDIO_DELIVERY_MODE
    app.config['UPSTREAM_TIMEOUT_SECONDS'] = UPSTREAM_TIMEOUT_SECONDS

    version = get_version()
    app.logger.info(f"=== TrackVault {version} Starting Up ===")

    if AUDIO_DELIVERY_MODE not in DELIVERY_MODES:
        app.logger.warning(f"Unknown AUDIO_DELIVERY_MODE '{AUDIO_DELIVERY_MODE}', falling back to 'direct'")
        app.config['AUDIO_DELIVERY_MODE'] = 'direct'

    if FILE_STORAGE_BACKEND == 's3':
        app.logger.info(f"Object storage: S3 bucket '{STORAGE_BUCKET}' at {S3_ENDPOINT_URL or 'AWS default endpoint'}")
    else:
        app.logger.info(f"Object storage: local folder {UPLOAD_FOLDER} (container label '{STORAGE_BUCKET}')")
    app.logger.info(f"Audio delivery mode: {app.config['AUDIO_DELIVERY_MODE']}")

    return version
