"""
OTP BACKEND API ROUTES - FLASK BLUEPRINT

REST endpoints for HOTP/TOTP. The API is stateless: the caller sends the secret
with every request and nothing is stored server-side.

USAGE:
- Server runs at: http://localhost:5000
- Every endpoint takes a JSON body with at least "secret"
  ("encoding": base32 (default) | hex | raw)

EXAMPLES:
curl -X POST http://localhost:5000/api/hotp -H "Content-Type: application/json" \
     -d '{"secret": "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ", "counter": 1}'
curl "http://localhost:5000/api/counter?timestamp=59"
"""

import time

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from otpgen.otp_core import MAX_SAFE_DIGITS, OTPError, decode_secret, new_generator, new_time_window

otp_bp = Blueprint('otp', __name__, url_prefix='/api')


# --- Request helpers -------------------------------------------------------
def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("JSON object body required")
    return data


def _int_field(data, name: str, required: bool = False):
    value = data.get(name)
    if value is None:
        if required:
            raise BadRequest(f"'{name}' is required")
        return None
    if isinstance(value, bool):
        raise BadRequest(f"'{name}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"'{name}' must be an integer")


def _key(data) -> bytes:
    secret = data.get('secret')
    if not isinstance(secret, str):
        raise BadRequest("'secret' is required")
    return decode_secret(secret, data.get('encoding', 'base32'))


def _generator(data):
    """App-wide generator unless the request overrides digits or hash."""
    digits = _int_field(data, 'digits')
    hash_name = data.get('hash')
    if digits is None and hash_name is None:
        return current_app.config["OTP_GENERATOR"]
    # Codes longer than MAX_SAFE_DIGITS are only zero padding; keep requests bounded
    if digits is not None and not 1 <= digits <= MAX_SAFE_DIGITS:
        raise BadRequest(f"'digits' must be between 1 and {MAX_SAFE_DIGITS}")
    settings = current_app.config["OTP_SETTINGS"]
    return new_generator(
        digits if digits is not None else settings.digits,
        hash_name if hash_name is not None else settings.hash_name,
    )


def _time_window(data):
    period = _int_field(data, 'period')
    epoch = _int_field(data, 'epoch')
    if period is None and epoch is None:
        return current_app.config["OTP_TIME_WINDOW"]
    settings = current_app.config["OTP_SETTINGS"]
    return new_time_window(
        epoch if epoch is not None else settings.epoch,
        period if period is not None else settings.time_step,
    )


def _timestamp(data) -> int:
    timestamp = _int_field(data, 'timestamp')
    return timestamp if timestamp is not None else int(time.time())


# --- Error handlers --------------------------------------------------------
@otp_bp.errorhandler(OTPError)
def handle_otp_error(e):
    current_app.logger.warning("OTP request rejected: %s", e)
    return jsonify({"error": str(e)}), 400


@otp_bp.errorhandler(BadRequest)
def handle_bad_request(e):
    return jsonify({"error": e.description}), 400


# --- Endpoints -------------------------------------------------------------
@otp_bp.route('/hotp', methods=['POST'])
def get_hotp():
    """
    HOTP CODE (counter-based)

      {"secret": "...", "counter": 1, "digits": 6, "hash": "SHA1"}

    Output: {"code": "287082", "counter": 1, "digits": 6}
    """
    data = _json_body()
    hp = _generator(data)
    counter = _int_field(data, 'counter', required=True)
    code = hp.generate(_key(data), counter)
    return jsonify({"code": code, "counter": counter, "digits": hp.digits})


@otp_bp.route('/hotp/verify', methods=['POST'])
def verify_hotp_route():
    """
    VERIFY A HOTP CODE

      {"secret": "...", "code": "287082", "counter": 1}

    Output: {"valid": true} or {"valid": false}
    """
    data = _json_body()
    if 'code' not in data:
        raise BadRequest("'code' is required")
    hp = _generator(data)
    counter = _int_field(data, 'counter', required=True)
    valid = hp.validate(_key(data), data['code'], counter)
    return jsonify({"valid": valid})


@otp_bp.route('/totp', methods=['POST'])
def get_totp():
    """
    TOTP CODE (time-based)

      {"secret": "...", "timestamp": 59, "period": 30, "epoch": 0, "digits": 8}

    "timestamp" defaults to now.
    Output: {"code": "94287082", "counter": 1, "remaining": 1, "timestamp": 59}
    """
    data = _json_body()
    hp = _generator(data)
    tp = _time_window(data)
    timestamp = _timestamp(data)
    counter = tp.at(timestamp)
    code = hp.generate(_key(data), counter)
    return jsonify({
        "code": code,
        "counter": counter,
        "remaining": tp.remaining(timestamp),
        "timestamp": timestamp,
    })


@otp_bp.route('/totp/verify', methods=['POST'])
def verify_totp_route():
    """
    VERIFY A TOTP CODE against the window containing "timestamp" (default now).
    No drift window: only the current time step is accepted.

      {"secret": "...", "code": "94287082", "timestamp": 59, "digits": 8}

    Output: {"valid": true} or {"valid": false}
    """
    data = _json_body()
    if 'code' not in data:
        raise BadRequest("'code' is required")
    hp = _generator(data)
    tp = _time_window(data)
    counter = tp.at(_timestamp(data))
    valid = hp.validate(_key(data), data['code'], counter)
    return jsonify({"valid": valid})


@otp_bp.route('/counter', methods=['GET'])
def get_counter():
    """
    TOTP MOVING FACTOR

      curl "http://localhost:5000/api/counter?timestamp=59&period=30&epoch=0"

    Output: {"counter": 1, "remaining": 1, "valid_from": 30}
    """
    params = request.args.to_dict()
    tp = _time_window(params)
    timestamp = _timestamp(params)
    counter = tp.at(timestamp)
    return jsonify({
        "counter": counter,
        "remaining": tp.remaining(timestamp),
        "valid_from": tp.valid_from(counter),
    })
