#!/usr/bin/env python3
"""
otp_core.py — Core library for HOTP (RFC 4226) / TOTP (RFC 6238).

Goals:
- Pure functions and small immutable objects, usable directly by the CLI and REST API.
- No argparse / Flask here; outer layers live in otp_cli.py and backend/.
- Nothing in this module reads, writes or logs secret material.

Algorithm:
- HOTP: code = Truncate(HMAC-H(key, counter_8_bytes_be)) mod 10^digits
- TOTP: HOTP with counter = floor((timestamp - T0) / X)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union
import base64
import binascii
import hashlib
import hmac
import logging
import math
import struct
import time

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # RFC 4226 minimum, most authenticator apps
DEFAULT_HASH = "SHA1"       # RFC 4226 default primitive
DEFAULT_TIME_STEP = 30      # TOTP step X (seconds)
DEFAULT_EPOCH = 0           # TOTP T0, the Unix epoch
MIN_DIGEST_SIZE = 20        # offset (max 15) + 4 bytes must fit
MAX_SAFE_DIGITS = 9         # 10^9 < 2^31
MAX_COUNTER = 2 ** 64 - 1

HASH_PRIMITIVES = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}

HashPrimitive = Union[str, Callable]
Timestamp = Union[int, float, datetime]


# --- Errors ----------------------------------------------------------------
class OTPError(ValueError):
    """Base class for every error raised by otpgen."""


class ConfigurationError(OTPError):
    """Invalid generator / time-window configuration."""


class DigestTooShortError(OTPError):
    """The truncation window runs past the end of the digest."""


class CounterRangeError(OTPError):
    """Counter does not fit in an unsigned 64-bit integer."""


class InvalidTimestampError(OTPError):
    """Timestamp is not a finite int, float or datetime."""


class TimestampBeforeEpochError(InvalidTimestampError):
    """Timestamp is earlier than the configured epoch."""


class InvalidSecretError(OTPError):
    """An encoded secret could not be decoded into key bytes."""


# --- Utility / I/O ---------------------------------------------------------
SECRET_ENCODINGS = ("base32", "hex", "raw")


def decode_secret(secret: str, encoding: str = "base32") -> bytes:
    """
    Decode a user-supplied secret into raw key bytes.

    - base32: case-insensitive, spaces ignored, '=' padding optional
      (authenticator apps usually show "JBSW Y3DP EHPK 3PXP")
    - hex: e.g. "3132333435363738393031323334353637383930"
    - raw: the UTF-8 bytes of the string itself (RFC test keys)

    Raises:
        InvalidSecretError: unknown encoding, empty or undecodable secret
    """
    if encoding not in SECRET_ENCODINGS:
        raise InvalidSecretError(
            f"Unknown secret encoding '{encoding}', expected one of {', '.join(SECRET_ENCODINGS)}"
        )
    if not secret or not secret.strip():
        raise InvalidSecretError("Secret is empty")

    if encoding == "raw":
        return secret.encode("utf-8")

    compact = "".join(secret.split())
    try:
        if encoding == "hex":
            return bytes.fromhex(compact)
        compact = compact.rstrip("=")
        return base64.b32decode(compact + "=" * (-len(compact) % 8), casefold=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidSecretError(f"Invalid {encoding} secret") from e


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Convert a counter into the 8-byte big-endian message RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'

    Raises:
        CounterRangeError: if i is not an int in [0, 2^64 - 1]
    """
    if isinstance(i, bool) or not isinstance(i, int):
        raise CounterRangeError(f"Counter must be an int, got {type(i).__name__}")
    if i < 0 or i > MAX_COUNTER:
        raise CounterRangeError(f"Counter {i} is outside [0, 2^64 - 1]")
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Apply RFC 4226 dynamic truncation.

    - offset = last_byte & 0x0F
    - take 4 bytes from offset, clear the MSB (0x7F) of the first one
    - return the 31-bit unsigned integer; mod 10^digits is the caller's job

    Arguments:
        hmac_digest: HMAC digest (SHA1 -> 20 bytes, SHA256 -> 32, SHA512 -> 64)
    Raises:
        DigestTooShortError: if hmac_digest is shorter than offset + 4
    """
    if not hmac_digest:
        raise DigestTooShortError("Digest is empty")
    offset = hmac_digest[-1] & 0x0F
    if len(hmac_digest) < offset + 4:
        raise DigestTooShortError(
            f"Digest of {len(hmac_digest)} bytes is too short for offset {offset}"
        )
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def resolve_hash(hash_primitive: HashPrimitive) -> Callable:
    """
    Turn a hash selector into a hashlib-style constructor.

    Accepts "SHA1" / "sha-256" / "Sha512" or a callable such as hashlib.sha256.
    The primitive's digest must be at least MIN_DIGEST_SIZE bytes.
    """
    if isinstance(hash_primitive, str):
        name = hash_primitive.upper().replace("-", "").replace("_", "")
        if name not in HASH_PRIMITIVES:
            raise ConfigurationError(
                f"Unknown hash primitive '{hash_primitive}', "
                f"expected one of {', '.join(HASH_PRIMITIVES)}"
            )
        factory = HASH_PRIMITIVES[name]
    elif callable(hash_primitive):
        factory = hash_primitive
    else:
        raise ConfigurationError(f"Unsupported hash primitive: {hash_primitive!r}")

    digest_size = factory().digest_size
    if digest_size < MIN_DIGEST_SIZE:
        raise ConfigurationError(
            f"Hash digest of {digest_size} bytes is shorter than {MIN_DIGEST_SIZE}"
        )
    return factory


def hash_name(factory: Callable) -> str:
    """Canonical name of a resolved constructor, e.g. hashlib.sha256 -> "SHA256"."""
    for name, known in HASH_PRIMITIVES.items():
        if known is factory:
            return name
    return factory().name.upper()


# --- Configuration ---------------------------------------------------------
@dataclass(frozen=True)
class HotpConfig:
    """
    Generator settings, validated on construction.

    hash_factory accepts a name ("SHA256") or a hashlib constructor and is
    stored as the resolved constructor.

    Raises:
        ConfigurationError: bad digits or an unusable hash primitive
    """
    digits: int = DEFAULT_DIGITS
    hash_factory: HashPrimitive = hashlib.sha1

    def __post_init__(self):
        if isinstance(self.digits, bool) or not isinstance(self.digits, int):
            raise ConfigurationError(f"Digits must be an int, got {type(self.digits).__name__}")
        if self.digits < 1:
            raise ConfigurationError(f"Digits must be at least 1, got {self.digits}")
        if self.digits > MAX_SAFE_DIGITS:
            # dbc is 31-bit, so 10^digits no longer bounds the code
            logger.warning(
                "digits=%d exceeds %d; codes are bounded by 2^31 and will keep leading zeros",
                self.digits, MAX_SAFE_DIGITS,
            )
        object.__setattr__(self, "hash_factory", resolve_hash(self.hash_factory))

    @property
    def hash_name(self) -> str:
        return hash_name(self.hash_factory)


@dataclass(frozen=True)
class TotpConfig:
    """
    Time-window settings, validated on construction.

    Raises:
        ConfigurationError: non-int values, negative epoch or time_step <= 0
    """
    epoch: int = DEFAULT_EPOCH
    time_step: int = DEFAULT_TIME_STEP

    def __post_init__(self):
        for name in ("epoch", "time_step"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an int, got {type(value).__name__}")
        if self.time_step <= 0:
            raise ConfigurationError(f"time_step must be positive, got {self.time_step}")
        if self.epoch < 0:
            raise ConfigurationError(f"epoch must not be negative, got {self.epoch}")


# --- Code generator (counter-based) ----------------------------------------
class Hotp:
    """
    HMAC-based one-time password generator.

    Holds only an immutable HotpConfig, so one instance can be shared by any
    number of threads. Keys are passed per call and never stored.

    >>> hp = new_generator()
    >>> hp.generate(b"12345678901234567890", 0)
    '755224'
    """

    def __init__(self, config: HotpConfig):
        self._config = config

    @property
    def config(self) -> HotpConfig:
        return self._config

    @property
    def digits(self) -> int:
        return self._config.digits

    def generate(self, key: bytes, counter: int) -> str:
        """
        Generate the HOTP code for (key, counter).

        Steps:
        1. Message = 8-byte counter (big-endian)
        2. HMAC-H(key, message)
        3. Dynamic truncate -> dbc
        4. otp = dbc % 10^digits
        5. Zero-pad to exactly "digits" characters

        Raises:
            CounterRangeError: counter outside [0, 2^64 - 1]
            DigestTooShortError: the hash primitive produced a short digest
        """
        msg = int_to_bytes(counter)
        digest = hmac.new(key, msg, self._config.hash_factory).digest()
        dbc = dynamic_truncate(digest)
        otp_val = dbc % (10 ** self._config.digits)
        return str(otp_val).zfill(self._config.digits)

    def validate(self, key: bytes, code: str, counter: int) -> bool:
        """
        True iff code is exactly the padded code for (key, counter).

        Uses hmac.compare_digest so the comparison time does not depend on
        how many leading characters match.
        """
        if not isinstance(code, str):
            return False
        expected = self.generate(key, counter)
        return hmac.compare_digest(expected.encode("ascii"), code.encode("utf-8", "replace"))

    def __repr__(self) -> str:
        return f"Hotp(digits={self.digits}, hash={self._config.hash_name})"


# --- Time-window derivation ------------------------------------------------
def to_unix_seconds(timestamp: Timestamp) -> int:
    """Whole Unix seconds for an int, float or datetime (fraction dropped)."""
    if isinstance(timestamp, datetime):
        timestamp = timestamp.timestamp()
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise InvalidTimestampError(f"Unsupported timestamp type: {type(timestamp).__name__}")
    if isinstance(timestamp, float) and not math.isfinite(timestamp):
        raise InvalidTimestampError(f"Timestamp must be finite, got {timestamp}")
    return int(timestamp // 1)


class Totp:
    """
    Maps wall-clock time to the HOTP moving factor (RFC 6238).

    counter = floor((timestamp - epoch) / time_step)
    """

    def __init__(self, config: TotpConfig):
        self._config = config

    @property
    def config(self) -> TotpConfig:
        return self._config

    @property
    def time_step(self) -> int:
        return self._config.time_step

    @property
    def epoch(self) -> int:
        return self._config.epoch

    def _elapsed(self, timestamp: Timestamp) -> int:
        seconds = to_unix_seconds(timestamp)
        if seconds < self._config.epoch:
            raise TimestampBeforeEpochError(
                f"Timestamp {seconds} is before epoch {self._config.epoch}"
            )
        return seconds - self._config.epoch

    def at(self, timestamp: Timestamp) -> int:
        """
        Counter for the given time.

        Arguments:
            timestamp: Unix seconds (int / float) or a datetime
        Raises:
            TimestampBeforeEpochError: timestamp < epoch
        """
        return self._elapsed(timestamp) // self._config.time_step

    def now(self) -> int:
        """Counter for the current wall-clock time."""
        return self.at(int(time.time()))

    def remaining(self, timestamp: Optional[Timestamp] = None) -> int:
        """Seconds left before the counter for timestamp (default: now) advances."""
        if timestamp is None:
            timestamp = int(time.time())
        return self._config.time_step - (self._elapsed(timestamp) % self._config.time_step)

    def valid_from(self, counter: int) -> int:
        """First Unix second whose counter equals counter."""
        if counter < 0:
            raise CounterRangeError(f"Counter {counter} is negative")
        return self._config.epoch + counter * self._config.time_step

    def __repr__(self) -> str:
        return f"Totp(epoch={self.epoch}, time_step={self.time_step})"


# --- Factories -------------------------------------------------------------
def new_generator(digits: int = DEFAULT_DIGITS, hash_primitive: HashPrimitive = DEFAULT_HASH) -> Hotp:
    """
    Build a validated Hotp.

    Arguments:
        digits: code length, >= 1 (RFC 4226 recommends 6-8)
        hash_primitive: "SHA1" (default), "SHA256", "SHA512" or a hashlib constructor

    Raises:
        ConfigurationError: bad digits or an unusable hash primitive
    """
    config = HotpConfig(digits=digits, hash_factory=hash_primitive)
    logger.debug("Configured HOTP generator: digits=%d hash=%s", digits, config.hash_name)
    return Hotp(config)


def new_time_window(epoch: int = DEFAULT_EPOCH, time_step: int = DEFAULT_TIME_STEP) -> Totp:
    """
    Build a validated Totp.

    Arguments:
        epoch: T0 in Unix seconds (default 0)
        time_step: X in whole seconds, > 0 (default 30)

    Raises:
        ConfigurationError: non-int values, negative epoch or time_step <= 0
    """
    config = TotpConfig(epoch=epoch, time_step=time_step)
    logger.debug("Configured TOTP window: epoch=%d time_step=%d", epoch, time_step)
    return Totp(config)
