"""
FLASK APP MAIN ENTRY POINT - OTP BACKEND SERVER
==================================================

Sets up the Flask app, enables CORS and registers the /api blueprint.

MAIN FEATURES
- Flask web server (stateless: no secrets or codes are stored)
- CORS enabled for frontend integration
- HOTP/TOTP defaults read once from OTP_* environment variables
- Index route listing the available API endpoints
"""
from typing import Mapping, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from otpgen.settings import load_settings


def create_app(environ: Optional[Mapping[str, str]] = None) -> Flask:
    """
    Build the Flask app.

    Arguments:
        environ: mapping to read OTP_* settings from (default: os.environ)
    """
    app = Flask(__name__)

    # Settings are validated here so a bad OTP_* value fails at startup,
    # not on the first request.
    settings = load_settings(environ)
    app.config["OTP_SETTINGS"] = settings
    app.config["OTP_GENERATOR"] = settings.generator()
    app.config["OTP_TIME_WINDOW"] = settings.time_window()

    # Allow a frontend on another origin to call the API
    CORS(app)

    from backend.routes import otp_bp
    app.register_blueprint(otp_bp)

    @app.route('/', methods=['GET'])
    def index():
        return jsonify({
            "service": "otpgen",
            "endpoints": [
                "POST /api/hotp",
                "POST /api/hotp/verify",
                "POST /api/totp",
                "POST /api/totp/verify",
                "GET /api/counter",
            ],
        })

    app.logger.info(
        "OTP backend ready: digits=%d hash=%s time_step=%d epoch=%d",
        settings.digits, settings.hash_name, settings.time_step, settings.epoch,
    )
    return app


# Development server: python -m backend.app
if __name__ == '__main__':
    create_app().run(debug=True, host='0.0.0.0', port=5000)
