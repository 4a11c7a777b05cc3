# TrackVault - media library backend for artists, projects and audio tracks
import logging
import os
import sys

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.middleware.proxy_fix import ProxyFix

from trackvault.config import app_config
from trackvault.errors import MediaError

# Configure logging
log_level = app_config.LOG_LEVEL
handler = logging.StreamHandler(sys.stdout)
handler.setLevel(log_level)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
handler.setFormatter(formatter)

# Get the root logger and clear any existing handlers to avoid duplicates
root_logger = logging.getLogger()
root_logger.handlers.clear()
root_logger.setLevel(log_level)
root_logger.addHandler(handler)

# Silence per-request debug output from the HTTP and AWS clients
for noisy in ('httpx', 'httpcore', 'botocore', 'boto3', 'urllib3'):
    logging.getLogger(noisy).setLevel(logging.WARNING)

limiter = Limiter(
    get_remote_address,
    app=None,  # Defer initialization
    default_limits=app_config.RATE_LIMIT_DEFAULTS,
)

app = Flask(__name__)

# Apply ProxyFix to handle headers from a reverse proxy (like Nginx or Caddy)
trusted_proxy_hops = int(os.environ.get('TRUSTED_PROXY_HOPS', '1'))
app.wsgi_app = ProxyFix(
    app.wsgi_app,
    x_for=trusted_proxy_hops,
    x_proto=trusted_proxy_hops,
    x_host=trusted_proxy_hops,
    x_prefix=trusted_proxy_hops
)

version = app_config.initialize_config(app)

from trackvault.database import db
db.init_app(app)
limiter.init_app(app)

if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:////'):
    os.makedirs(os.path.dirname(app.config['SQLALCHEMY_DATABASE_URI'][len('sqlite:///'):]), exist_ok=True)

from trackvault.api.artists import artists_bp
from trackvault.api.projects import projects_bp
from trackvault.api.tracks import tracks_bp
from trackvault.api.uploads import uploads_bp
from trackvault.api.media import media_bp
from trackvault.api.system import system_bp

from trackvault.init_db import initialize_database
with app.app_context():
    initialize_database(app)

app.register_blueprint(artists_bp)
app.register_blueprint(projects_bp)
app.register_blueprint(tracks_bp)
app.register_blueprint(uploads_bp)
app.register_blueprint(media_bp)
app.register_blueprint(system_bp)


@app.errorhandler(MediaError)
def handle_media_error(error):
    """Render the media error taxonomy as JSON."""
    if error.status_code >= 500:
        app.logger.error(f"{request.method} {request.path} failed: {error.message}",
                         exc_info=error.__cause__ is not None)
    response = jsonify(error.to_dict())
    response.status_code = error.status_code
    response.headers['Cache-Control'] = 'no-store, no-cache, max-age=0, must-revalidate'
    return response


@app.errorhandler(RequestEntityTooLarge)
def handle_too_large(error):
    return jsonify({'error': f'File too large (max {app_config.MAX_UPLOAD_MB}MB)'}), 413


@app.after_request
def add_no_store_headers(response):
    """API responses are never cached unless a handler says otherwise."""
    if request.path.startswith('/api/') and 'Cache-Control' not in response.headers:
        response.headers['Cache-Control'] = 'no-store, max-age=0'
    return response


if __name__ == '__main__':
    import argparse
    parser = argparse.ArgumentParser()
    parser.add_argument('--debug', action='store_true', help='Run in debug mode')
    parser.add_argument('--port', type=int, default=int(os.environ.get('PORT', '8899')))
    args = parser.parse_args()

    # Consider using waitress or gunicorn for production
    # gunicorn -b 0.0.0.0:8899 trackvault.app:app
    app.run(host='0.0.0.0', port=args.port, debug=args.debug)
