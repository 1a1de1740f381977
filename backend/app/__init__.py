"""Flask application factory."""

import json
import os
from flask import Flask
from flask_cors import CORS

DEFAULT_BUGZILLA_URL = "https://bugzilla.mozilla.org"

RELEASES_CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "config", "releases.json"
)


def load_releases_config(app, config_path=RELEASES_CONFIG_PATH):
    """Load the release calendar and Bugzilla defaults from config file."""
    if not os.path.exists(config_path):
        app.logger.info("No releases.json found, release calendar is empty")
        return {}

    try:
        with open(config_path, "r") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        app.logger.warning(f"Failed to load releases config: {e}")
        return {}

    if not isinstance(config, dict):
        app.logger.warning("Ignoring releases config: top level is not an object")
        return {}

    app.logger.info(f"Loaded {len(config.get('releases', []))} releases")
    return config


def create_app(config=None):
    """Create and configure the Flask application.

    Settings come from config/releases.json, then environment variables,
    then the optional `config` mapping (highest priority).
    """
    app = Flask(__name__)

    # Enable CORS for frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": ["http://localhost:5173", "http://127.0.0.1:5173"],
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-Bugzilla-Server"]
        }
    })

    file_config = load_releases_config(app)
    bugzilla = file_config.get("bugzilla", {})

    app.config["BUGZILLA_URL"] = os.getenv(
        "BUGZILLA_URL", bugzilla.get("server", DEFAULT_BUGZILLA_URL)
    )
    app.config["BUGZILLA_PRODUCT"] = os.getenv("BUGZILLA_PRODUCT", bugzilla.get("product"))
    app.config["BUGZILLA_TIMEOUT"] = int(os.getenv("BUGZILLA_TIMEOUT", "30"))
    app.config["RELEASES"] = file_config.get("releases", [])

    if config:
        app.config.update(config)

    # Register blueprints
    from app.api import bugs, releases
    app.register_blueprint(bugs.bp)
    app.register_blueprint(releases.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
