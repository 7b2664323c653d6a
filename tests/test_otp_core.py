import base64
import hashlib

import pyotp
import pytest

from otpgen.otp_core import (
    ConfigurationError,
    CounterRangeError,
    DigestTooShortError,
    Hotp,
    HotpConfig,
    InvalidSecretError,
    decode_secret,
    dynamic_truncate,
    int_to_bytes,
    new_generator,
    new_time_window,
    resolve_hash,
)

KEY20 = b"12345678901234567890"
KEY32 = b"12345678901234567890123456789012"
KEY64 = b"1234567890123456789012345678901234567890123456789012345678901234"

# RFC 4226 Appendix D
HOTP_VECTORS = [
    (0, "755224"),
    (1, "287082"),
    (2, "359152"),
    (3, "969429"),
    (4, "338314"),
    (5, "254676"),
    (6, "287922"),
    (7, "162583"),
    (8, "399871"),
    (9, "520489"),
]

# RFC 6238 Appendix B
TOTP_VECTORS = [
    (59, "SHA1", KEY20, "94287082"),
    (59, "SHA256", KEY32, "46119246"),
    (59, "SHA512", KEY64, "90693936"),
    (1111111109, "SHA1", KEY20, "07081804"),
    (1111111109, "SHA256", KEY32, "68084774"),
    (1111111109, "SHA512", KEY64, "25091201"),
    (1111111111, "SHA1", KEY20, "14050471"),
    (1111111111, "SHA256", KEY32, "67062674"),
    (1111111111, "SHA512", KEY64, "99943326"),
    (1234567890, "SHA1", KEY20, "89005924"),
    (1234567890, "SHA256", KEY32, "91819424"),
    (1234567890, "SHA512", KEY64, "93441116"),
    (2000000000, "SHA1", KEY20, "69279037"),
    (2000000000, "SHA256", KEY32, "90698825"),
    (2000000000, "SHA512", KEY64, "38618901"),
    (20000000000, "SHA1", KEY20, "65353130"),
    (20000000000, "SHA256", KEY32, "77737706"),
    (20000000000, "SHA512", KEY64, "47863826"),
]


# --- int_to_bytes ---
def test_int_to_bytes_is_big_endian_8_bytes():
    assert int_to_bytes(0) == b"\x00" * 8
    assert int_to_bytes(1) == b"\x00\x00\x00\x00\x00\x00\x00\x01"
    assert int_to_bytes(0x0102030405060708) == bytes([1, 2, 3, 4, 5, 6, 7, 8])
    assert int_to_bytes(2 ** 64 - 1) == b"\xff" * 8


@pytest.mark.parametrize("counter", [-1, 2 ** 64, "1", 1.0, True])
def test_int_to_bytes_rejects_out_of_range(counter):
    with pytest.raises(CounterRangeError):
        int_to_bytes(counter)


# --- dynamic_truncate ---
def test_dynamic_truncate_rfc4226_example():
    # RFC 4226 section 5.4: offset 0xa, dbc 0x50ef7f19
    digest = bytes.fromhex("1f8698690e02ca16618550ef7f19da8e945b555a")
    assert dynamic_truncate(digest) == 0x50EF7F19 == 1357872921


def test_dynamic_truncate_clears_sign_bit():
    digest = b"\xff" * 19 + b"\x00"
    assert dynamic_truncate(digest) == 0x7FFFFFFF


def test_dynamic_truncate_max_offset_fits_20_bytes():
    digest = bytes(range(19)) + b"\x0f"
    # offset 15 -> bytes 15, 16, 17, 18
    assert dynamic_truncate(digest) == 0x0F101112


def test_dynamic_truncate_short_digest():
    with pytest.raises(DigestTooShortError):
        dynamic_truncate(b"\x00" * 17 + b"\x0f")
    with pytest.raises(DigestTooShortError):
        dynamic_truncate(b"")


# --- Hotp ---
@pytest.mark.parametrize("counter,expected", HOTP_VECTORS)
def test_hotp_rfc4226_vectors(counter, expected):
    hp = new_generator()
    assert hp.generate(KEY20, counter) == expected
    assert hp.validate(KEY20, expected, counter)


@pytest.mark.parametrize("timestamp,hash_name,key,expected", TOTP_VECTORS)
def test_totp_rfc6238_vectors(timestamp, hash_name, key, expected):
    hp = new_generator(digits=8, hash_primitive=hash_name)
    tp = new_time_window()
    counter = tp.at(timestamp)
    assert hp.generate(key, counter) == expected
    assert hp.validate(key, expected, counter)


def test_hash_primitive_accepts_hashlib_constructor():
    hp = new_generator(digits=8, hash_primitive=hashlib.sha256)
    assert hp.generate(KEY32, new_time_window().at(59)) == "46119246"
    assert hp.config.hash_name == "SHA256"


@pytest.mark.parametrize("name", ["sha1", "SHA-256", "sha_512", "Sha256"])
def test_hash_names_are_normalised(name):
    assert callable(resolve_hash(name))


def test_generate_is_deterministic():
    hp = new_generator()
    assert hp.generate(KEY20, 12345) == hp.generate(KEY20, 12345)


def test_matches_pyotp():
    secret = base64.b32encode(KEY20).decode("ascii")
    for digest, name in ((hashlib.sha1, "SHA1"), (hashlib.sha256, "SHA256"), (hashlib.sha512, "SHA512")):
        hp = new_generator(digits=7, hash_primitive=name)
        reference = pyotp.HOTP(secret, digits=7, digest=digest)
        for counter in (0, 1, 77, 2 ** 32, 2 ** 63):
            assert hp.generate(KEY20, counter) == reference.at(counter)


def test_output_length_equals_digits():
    for digits in range(1, 11):
        hp = new_generator(digits=digits)
        for counter in range(50):
            assert len(hp.generate(KEY20, counter)) == digits


def test_leading_zero_is_kept():
    hp = new_generator(digits=8)
    assert hp.generate(KEY20, new_time_window().at(1111111109)) == "07081804"


def test_large_digit_count_is_bounded_by_31_bits():
    hp = new_generator(digits=12)
    code = hp.generate(KEY20, 0)
    assert len(code) == 12
    assert code.startswith("00")
    assert int(code) < 2 ** 31


def test_validate_rejects_single_character_mutation():
    hp = new_generator()
    code = hp.generate(KEY20, 3)
    for i in range(len(code)):
        mutated = code[:i] + str((int(code[i]) + 1) % 10) + code[i + 1:]
        assert not hp.validate(KEY20, mutated, 3)


def test_validate_compares_padded_string():
    hp = new_generator(digits=8)
    counter = new_time_window().at(1111111109)
    assert hp.validate(KEY20, "07081804", counter)
    assert not hp.validate(KEY20, "7081804", counter)
    assert not hp.validate(KEY20, " 7081804", counter)


def test_validate_rejects_other_counter_and_key():
    hp = new_generator()
    assert not hp.validate(KEY20, "755224", 1)
    assert not hp.validate(b"another key", "755224", 0)


@pytest.mark.parametrize("candidate", [None, 755224, b"755224", "75522é"])
def test_validate_non_matching_types(candidate):
    assert not new_generator().validate(KEY20, candidate, 0)


def test_generate_rejects_bad_counter():
    with pytest.raises(CounterRangeError):
        new_generator().generate(KEY20, -1)


@pytest.mark.parametrize("digits", [0, -1, "6", 6.0, None])
def test_new_generator_rejects_bad_digits(digits):
    with pytest.raises(ConfigurationError):
        new_generator(digits=digits)


@pytest.mark.parametrize("primitive", ["MD5", "sha3", 42, hashlib.md5])
def test_new_generator_rejects_bad_hash(primitive):
    with pytest.raises(ConfigurationError):
        new_generator(hash_primitive=primitive)


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        new_generator(digits=0)


def test_large_digits_logs_warning(caplog):
    with caplog.at_level("WARNING", logger="otpgen.otp_core"):
        new_generator(digits=10)
    assert "digits=10" in caplog.text


def test_config_is_immutable():
    hp = new_generator()
    with pytest.raises(AttributeError):
        hp.config.digits = 8


def test_repr_does_not_need_key():
    assert repr(new_generator(8, "SHA512")) == "Hotp(digits=8, hash=SHA512)"


# --- decode_secret ---
def test_decode_secret_base32_variants():
    encoded = base64.b32encode(KEY20).decode("ascii")
    assert decode_secret(encoded) == KEY20
    assert decode_secret(encoded.lower()) == KEY20
    spaced = " ".join(encoded[i:i + 4] for i in range(0, len(encoded), 4))
    assert decode_secret(spaced) == KEY20


def test_decode_secret_adds_missing_padding():
    assert decode_secret("JBSWY3DPEHPK3PXP") == b"Hello!\xde\xad\xbe\xef"
    assert decode_secret("MZXW6") == b"foo"
    assert decode_secret("MZXW6===") == b"foo"


def test_decode_secret_hex_and_raw():
    assert decode_secret("3132333435363738393031323334353637383930", "hex") == KEY20
    assert decode_secret("12345678901234567890", "raw") == KEY20


@pytest.mark.parametrize("secret,encoding", [
    ("", "base32"),
    ("   ", "hex"),
    ("!!!!", "base32"),
    ("xyz", "hex"),
    ("JBSWY3DPEHPK3PXP", "base64"),
])
def test_decode_secret_errors(secret, encoding):
    with pytest.raises(InvalidSecretError):
        decode_secret(secret, encoding)


# --- HotpConfig ---
@pytest.mark.parametrize("digits", [0, -3, "6", None])
def test_hotp_config_rejects_bad_digits(digits):
    with pytest.raises(ConfigurationError):
        HotpConfig(digits=digits)


@pytest.mark.parametrize("primitive", ["MD5", 42, hashlib.md5])
def test_hotp_config_rejects_bad_hash(primitive):
    with pytest.raises(ConfigurationError):
        HotpConfig(hash_factory=primitive)


def test_hotp_config_resolves_hash_name():
    config = HotpConfig(digits=8, hash_factory="sha-512")
    assert config.hash_factory is hashlib.sha512
    assert Hotp(config).generate(KEY64, 1) == "90693936"


class _ClippedSha1:
    """Reports a SHA1-sized digest but only ever returns 3 bytes."""

    digest_size = 20
    block_size = 64
    name = "clipped-sha1"

    def __init__(self, data=b""):
        self._h = hashlib.sha1(data)

    def update(self, data):
        self._h.update(data)

    def copy(self):
        other = _ClippedSha1()
        other._h = self._h.copy()
        return other

    def digest(self):
        return self._h.digest()[:3]


def test_generate_with_short_digest_raises():
    hp = new_generator(hash_primitive=_ClippedSha1)
    with pytest.raises(DigestTooShortError):
        hp.generate(KEY20, 0)
    with pytest.raises(DigestTooShortError):
        hp.validate(KEY20, "755224", 0)
