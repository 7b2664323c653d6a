"""
settings.py — Environment-driven defaults shared by the CLI and the REST API.

Variables:
    OTP_DIGITS      code length (default 6)
    OTP_HASH        SHA1 / SHA256 / SHA512 (default SHA1)
    OTP_TIME_STEP   TOTP step in seconds (default 30)
    OTP_EPOCH       TOTP T0 in Unix seconds (default 0)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from otpgen.otp_core import (
    DEFAULT_DIGITS,
    DEFAULT_EPOCH,
    DEFAULT_HASH,
    DEFAULT_TIME_STEP,
    ConfigurationError,
    Hotp,
    Totp,
    new_generator,
    new_time_window,
)


@dataclass(frozen=True)
class Settings:
    digits: int = DEFAULT_DIGITS
    hash_name: str = DEFAULT_HASH
    time_step: int = DEFAULT_TIME_STEP
    epoch: int = DEFAULT_EPOCH

    def generator(self) -> Hotp:
        return new_generator(self.digits, self.hash_name)

    def time_window(self) -> Totp:
        return new_time_window(self.epoch, self.time_step)


def _int_env(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from e


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read OTP_* variables and validate them by building the core objects once."""
    if environ is None:
        environ = os.environ
    settings = Settings(
        digits=_int_env(environ, "OTP_DIGITS", DEFAULT_DIGITS),
        hash_name=(environ.get("OTP_HASH") or DEFAULT_HASH).strip(),
        time_step=_int_env(environ, "OTP_TIME_STEP", DEFAULT_TIME_STEP),
        epoch=_int_env(environ, "OTP_EPOCH", DEFAULT_EPOCH),
    )
    settings.generator()
    settings.time_window()
    return settings
