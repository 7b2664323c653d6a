#!/usr/bin/env python3
"""
otp_cli.py — CLI wrapper around otp_core.py

Subcommands:
- hotp    : HOTP code for a given counter
- totp    : TOTP code for now (or --timestamp), --watch to refresh in real time
- counter : TOTP moving factor for a timestamp
- verify  : check an OTP code (TOTP/HOTP)

Defaults for --digits / --hash / --period / --epoch come from OTP_* environment
variables (see settings.py).

eg..:
    otpgen hotp --secret GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ --counter 1
    otpgen totp --secret 12345678901234567890 --encoding raw --digits 8 --timestamp 59
    otpgen verify totp --secret JBSWY3DPEHPK3PXP --code 123456
"""

import argparse
import logging
import sys
import time

from otpgen.otp_core import (
    HASH_PRIMITIVES,
    SECRET_ENCODINGS,
    OTPError,
    decode_secret,
    new_generator,
    new_time_window,
)
from otpgen.settings import load_settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def _key(args) -> bytes:
    return decode_secret(args.secret, args.encoding)


def _generator(args, settings):
    digits = args.digits if args.digits is not None else settings.digits
    hash_name = args.hash or settings.hash_name
    return new_generator(digits, hash_name)


def _time_window(args, settings):
    period = args.period if args.period is not None else settings.time_step
    epoch = args.epoch if args.epoch is not None else settings.epoch
    return new_time_window(epoch, period)


def _timestamp(args) -> int:
    return args.timestamp if args.timestamp is not None else int(time.time())


# --- CLI command handlers ---
def cmd_hotp(args, settings) -> int:
    hp = _generator(args, settings)
    code = hp.generate(_key(args), args.counter)
    logger.debug("HOTP: %r counter=%d", hp, args.counter)
    print(code)
    return EXIT_OK


def cmd_totp(args, settings) -> int:
    hp = _generator(args, settings)
    tp = _time_window(args, settings)
    key = _key(args)

    if not args.watch:
        now = _timestamp(args)
        counter = tp.at(now)
        logger.debug("TOTP: time=%d, counter=%d, remaining=%ds", now, counter, tp.remaining(now))
        print(hp.generate(key, counter))
        return EXIT_OK

    print("Press Ctrl+C to quit. Generating TOTP in real time...\n")
    last_code = None
    try:
        while True:
            now = int(time.time())
            code = hp.generate(key, tp.at(now))
            remaining = tp.remaining(now)
            if code != last_code:
                print(f"TOTP: {code}  (valid ~{remaining:2d}s)")
                last_code = code
            else:
                print(f".. {remaining:2d}s left", end="\r", flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")
    return EXIT_OK


def cmd_counter(args, settings) -> int:
    tp = _time_window(args, settings)
    now = _timestamp(args)
    counter = tp.at(now)
    logger.debug("%r: time=%d -> counter=%d", tp, now, counter)
    print(counter)
    return EXIT_OK


def cmd_verify_hotp(args, settings) -> int:
    hp = _generator(args, settings)
    if hp.validate(_key(args), args.code, args.counter):
        print(f"[+] HOTP code is VALID (counter={args.counter})")
        return EXIT_OK
    print(f"[-] HOTP code is INVALID (counter={args.counter})")
    return EXIT_INVALID


def cmd_verify_totp(args, settings) -> int:
    hp = _generator(args, settings)
    tp = _time_window(args, settings)
    counter = tp.at(_timestamp(args))
    if hp.validate(_key(args), args.code, counter):
        print("[+] TOTP code is VALID")
        return EXIT_OK
    print("[-] TOTP code is INVALID")
    return EXIT_INVALID


# --- Argparse builder ---
def _add_secret_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--secret", required=True, help="Shared secret")
    p.add_argument("--encoding", choices=SECRET_ENCODINGS, default="base32",
                   help="How --secret is encoded (default: base32)")


def _add_hotp_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--digits", type=int, help="Number of OTP digits (env OTP_DIGITS)")
    p.add_argument("--hash", choices=list(HASH_PRIMITIVES), type=str.upper,
                   help="HMAC hash primitive (env OTP_HASH)")


def _add_window_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--period", type=int, help="TOTP time step in seconds (env OTP_TIME_STEP)")
    p.add_argument("--epoch", type=int, help="TOTP T0 in Unix seconds (env OTP_EPOCH)")
    p.add_argument("--timestamp", type=int, help="Unix time to use instead of now")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="otpgen", description="HOTP/TOTP (RFC 4226 / RFC 6238) generator CLI")
    p.add_argument("--verbose", action="store_true", help="Verbose output")
    sub = p.add_subparsers(dest="cmd")

    # hotp
    ph = sub.add_parser("hotp", help="Generate HOTP code for a specific counter")
    _add_secret_args(ph)
    _add_hotp_args(ph)
    ph.add_argument("--counter", type=int, required=True)
    ph.set_defaults(func=cmd_hotp)

    # totp
    pt = sub.add_parser("totp", help="Generate TOTP code for now or --timestamp")
    _add_secret_args(pt)
    _add_hotp_args(pt)
    _add_window_args(pt)
    pt.add_argument("--watch", action="store_true", help="Keep printing codes as they change")
    pt.set_defaults(func=cmd_totp)

    # counter
    pc = sub.add_parser("counter", help="Print the TOTP counter for a timestamp")
    _add_window_args(pc)
    pc.set_defaults(func=cmd_counter)

    # verify
    pv = sub.add_parser("verify", help="Verify an OTP code (TOTP or HOTP)")
    sub_v = pv.add_subparsers(dest="verify_type")

    pvh = sub_v.add_parser("hotp", help="Verify a HOTP code")
    _add_secret_args(pvh)
    _add_hotp_args(pvh)
    pvh.add_argument("--code", required=True, help="OTP code to verify")
    pvh.add_argument("--counter", type=int, required=True, help="Current HOTP counter")
    pvh.set_defaults(func=cmd_verify_hotp)

    pvt = sub_v.add_parser("totp", help="Verify a TOTP code")
    _add_secret_args(pvt)
    _add_hotp_args(pvt)
    _add_window_args(pvt)
    pvt.add_argument("--code", required=True, help="OTP code to verify")
    pvt.set_defaults(func=cmd_verify_totp)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        settings = load_settings()
        return args.func(args, settings)
    except OTPError as e:
        print(f"[!] {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
