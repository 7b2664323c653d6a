"""
otpgen package
==============

HOTP / TOTP one-time passwords per RFC 4226 & RFC 6238.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- HOTP (HMAC-based One-Time Password):
  code = Truncate(HMAC-H(key=secret, msg=counter)) mod 10^digits
  → H is SHA1 by default, SHA256 / SHA512 optional.

- TOTP (Time-based One-Time Password):
  HOTP with counter = floor((timestamp - T0) / timestep)
  → default timestep = 30 seconds, T0 = 0.

- Dynamic Truncation:
  4 bytes taken from the digest at offset (last byte & 0x0F), sign bit cleared.

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from otpgen import new_generator, new_time_window
>>> hp = new_generator(digits=8)
>>> tp = new_time_window()
>>> hp.generate(b"12345678901234567890", tp.at(59))
'94287082'
>>> hp.validate(b"12345678901234567890", "94287082", tp.at(59))
True
"""
from otpgen.otp_core import (
    ConfigurationError,
    CounterRangeError,
    DigestTooShortError,
    Hotp,
    HotpConfig,
    InvalidSecretError,
    InvalidTimestampError,
    OTPError,
    TimestampBeforeEpochError,
    Totp,
    TotpConfig,
    decode_secret,
    dynamic_truncate,
    int_to_bytes,
    new_generator,
    new_time_window,
)
from otpgen.settings import Settings, load_settings

__all__ = [
    "ConfigurationError",
    "CounterRangeError",
    "DigestTooShortError",
    "Hotp",
    "HotpConfig",
    "InvalidSecretError",
    "InvalidTimestampError",
    "OTPError",
    "Settings",
    "TimestampBeforeEpochError",
    "Totp",
    "TotpConfig",
    "decode_secret",
    "dynamic_truncate",
    "int_to_bytes",
    "load_settings",
    "new_generator",
    "new_time_window",
]
