#!/usr/bin/env python3
"""
otp_cli.py — CLI cho quản trị viên, dùng chung core với web app.

Cung cấp các subcommand:
- set-key : lưu chuỗi cấu hình TOTP (Base32 hoặc otpauth://) vào store
- code    : hiển thị mã TOTP hiện tại (--watch để cập nhật liên tục)
- verify  : xác minh một mã TOTP
- import  : nạp document chuyển khoản từ file JSON (list các object)
- export  : xuất CSV theo khoảng thời gian
"""

import argparse
import json
import logging
import sys
import time

from core import otp_core
from core.transfers import build_report, parse_range, to_csv
from database import db_manager
from database.setup_database import DATABASE_FILE, setup_database

DEFAULT_SETTING_KEY = "totp_secret"


def _load_config(args) -> otp_core.TotpConfig:
    raw = db_manager.get_setting(args.key, path=args.db)
    config = otp_core.parse_totp_config(raw)
    if not config.secret:
        print(f"[!] verification key not found (key='{args.key}')", file=sys.stderr)
        sys.exit(1)
    return config


# --- CLI command handlers ---
def cmd_set_key(args):
    db_manager.set_setting(args.key, args.value.strip(), path=args.db)
    config = otp_core.parse_totp_config(args.value)
    print(f"[*] Stored TOTP config '{args.key}': {config.digits} digits, "
          f"{config.period}s, {config.algorithm}")


def cmd_code(args):
    config = _load_config(args)
    if not args.watch:
        code = otp_core.generate_totp(config.secret, config.period, config.digits,
                                      config.algorithm, timestamp=args.at)
        remaining = otp_core.seconds_remaining(config.period, args.at)
        print(f"TOTP ({config.digits}d): {code}  (valid ~{remaining:2d}s)")
        return

    print(f"Press Ctrl+C to quit. Generating {config.digits}-digit TOTP every {config.period}s...\n")
    last_code = None
    try:
        while True:
            now = time.time()
            code = otp_core.generate_totp(config.secret, config.period, config.digits,
                                          config.algorithm, timestamp=now)
            remaining = otp_core.seconds_remaining(config.period, now)
            if code != last_code:
                print(f"TOTP ({config.digits}d): {code}  (valid ~{remaining:2d}s)")
                last_code = code
            else:
                print(f".. {remaining:2d}s left", end='\r', flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")


def cmd_verify(args):
    config = _load_config(args)
    if not otp_core.is_well_formed_code(args.code, config.digits):
        print(f"[-] Code must be {config.digits} digits")
        sys.exit(2)

    ok = otp_core.verify_with_config(config, args.code, window=args.window, timestamp=args.at)
    if ok:
        print("[+] TOTP code is VALID")
    else:
        print("[-] TOTP code is INVALID")
        sys.exit(1)


def cmd_import(args):
    with open(args.file, "r", encoding="utf-8") as f:
        documents = json.load(f)
    if isinstance(documents, dict):
        documents = [documents]

    for doc in documents:
        db_manager.add_transfer(doc, path=args.db)
    print(f"[*] Imported {len(documents)} transfer documents into {args.db}")


def cmd_export(args):
    try:
        start, end = parse_range(args.start, args.end)
    except ValueError as e:
        print(f"[!] {e}", file=sys.stderr)
        sys.exit(2)

    raw_rows = db_manager.query_transfers(start, end, path=args.db)
    report = build_report(raw_rows, args.sort, args.order)
    csv_text = to_csv(report["rows"])

    if args.out == "-":
        sys.stdout.write(csv_text + "\n")
    else:
        with open(args.out, "w", encoding="utf-8", newline="") as f:
            f.write(csv_text)
        counts = report["counts"]
        print(f"[*] Wrote {report['total']} rows to {args.out} "
              f"(正常 {counts['normal']} / エラー {counts['error']} / "
              f"Kyash {counts['kyash']} / GMO {counts['gmo']})")


def cmd_help(args):
    print("'python -m core.otp_cli -h' for help.")


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="M-Log CSV Exporter admin CLI")
    p.add_argument("--db", default=DATABASE_FILE, help="Path to the sqlite document store")
    p.add_argument("--key", default=DEFAULT_SETTING_KEY, help="Settings key holding the TOTP config")
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # set-key
    ps = sub.add_parser("set-key", help="Store the TOTP config string (Base32 or otpauth:// URI)")
    ps.add_argument("value", help="Base32 secret or otpauth:// URI")
    ps.set_defaults(func=cmd_set_key)

    # code
    pc = sub.add_parser("code", help="Show the current TOTP code")
    pc.add_argument("--at", type=float, help="Epoch seconds to generate for (default: now)")
    pc.add_argument("--watch", action="store_true", help="Refresh every second")
    pc.set_defaults(func=cmd_code)

    # verify
    pv = sub.add_parser("verify", help="Verify a TOTP code")
    pv.add_argument("--code", required=True, help="OTP code to verify")
    pv.add_argument("--window", type=int, default=otp_core.DEFAULT_WINDOW, help="Allowed +/- step window")
    pv.add_argument("--at", type=float, help="Epoch seconds to verify at (default: now)")
    pv.set_defaults(func=cmd_verify)

    # import
    pi = sub.add_parser("import", help="Import transfer documents from a JSON file")
    pi.add_argument("file", help="JSON file: list of transfer objects")
    pi.set_defaults(func=cmd_import)

    # export
    pe = sub.add_parser("export", help="Export transfers in a time range as CSV")
    pe.add_argument("--start", required=True, help="Range start (ISO 8601, Tokyo time if no offset)")
    pe.add_argument("--end", required=True, help="Range end (ISO 8601, Tokyo time if no offset)")
    pe.add_argument("--sort", default="createdAt", help="Field to sort by")
    pe.add_argument("--order", choices=["asc", "desc"], default="asc")
    pe.add_argument("--out", default="-", help="Output file ('-' for stdout)")
    pe.set_defaults(func=cmd_export)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    if args.func is not cmd_help:
        setup_database(args.db)
    args.func(args)


if __name__ == "__main__":
    main()
