"""
Backend package: REST API for HOTP/TOTP built on Flask.
Thin wrapper around otpgen.otp_core.
"""

from .app import create_app

__all__ = ['create_app']
