#!/usr/bin/env python3
"""
otp_core.py — Core library cho TOTP (RFC 6238) dùng để khóa trang export.

Mục tiêu:
- Chứa các hàm thuần (pure functions) để backend Flask và CLI gọi trực tiếp.
- Không đọc/ghi file, không giữ state: cờ "đã xác thực" do app shell (session) quản lý.
- Input xấu không gây lỗi: secret lỗi -> mã sai, URI lỗi -> fallback về secret thô.

Lưu ý bảo mật:
- Secret được đọc từ document store như một chuỗi opaque (Base32 hoặc otpauth://).
- HMAC lấy từ stdlib `hmac` / `hashlib`, không tự cài đặt lại.
"""

from dataclasses import dataclass
import hashlib
import hmac
import math
import re
import time
from urllib.parse import parse_qs, urlsplit

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # chuẩn: 6 chữ số
DEFAULT_TIME_STEP = 30      # TOTP step (giây)
DEFAULT_ALGORITHM = "SHA-1"
DEFAULT_WINDOW = 1          # chấp nhận bước trước / hiện tại / sau

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

# Tên thuật toán chuẩn -> hàm băm của hashlib
ALGORITHMS = {
    "SHA-1": hashlib.sha1,
    "SHA-256": hashlib.sha256,
    "SHA-512": hashlib.sha512,
}

# Giá trị `algorithm=` trong otpauth URI -> tên chuẩn
URI_ALGORITHMS = {
    "SHA1": "SHA-1",
    "SHA256": "SHA-256",
    "SHA512": "SHA-512",
}

_OTPAUTH_RE = re.compile(r"^otpauth://", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class TotpConfig:
    """Cấu hình TOTP đã parse, bất biến sau khi tạo."""

    secret: str
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_TIME_STEP
    algorithm: str = DEFAULT_ALGORITHM

    @property
    def key(self) -> bytes:
        """Secret đã decode Base32 -> raw bytes dùng làm HMAC key."""
        return base32_to_bytes(self.secret)


# --- Secret decoder --------------------------------------------------------
def base32_to_bytes(value) -> bytes:
    """
    Decode Base32 (RFC 4648) theo kiểu "best effort".

    - Không phân biệt hoa/thường.
    - Ký tự ngoài bảng A-Z2-7 bị bỏ qua (không raise).
    - Gặp '=' (padding) thì dừng ngay.
    - Mỗi ký tự góp 5 bit; đủ 8 bit thì xuất 1 byte (MSB trước).

    Khác với base64.b32decode: hàm này không bao giờ lỗi, secret hỏng chỉ
    sinh ra key sai và sẽ không khớp mã nào.

    Arguments:
        value: chuỗi secret (None -> b"")
    Trả về:
        bytes: key thô
    """
    clean = str(value or "").upper()
    bits = 0
    buffer = 0
    out = bytearray()
    for ch in clean:
        if ch == "=":
            break
        idx = BASE32_ALPHABET.find(ch)
        if idx < 0:
            continue
        buffer = ((buffer << 5) | idx) & 0xFFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
    return bytes(out)


# --- RFC helpers -----------------------------------------------------------
def time_step_counter(timestamp=None, period: int = DEFAULT_TIME_STEP) -> int:
    """
    Counter TOTP = floor(floor(timestamp) / period).

    Arguments:
        timestamp: epoch seconds (int/float). None -> time.time()
        period: độ dài 1 bước (giây), phải > 0
    """
    if timestamp is None:
        timestamp = time.time()
    return math.floor(timestamp) // period


def int_to_bytes(i: int) -> bytes:
    """
    Chuyển counter sang 8-byte big-endian như RFC4226 yêu cầu.

    Counter âm (timestamp trước epoch trong cửa sổ verify) được quấn theo bù 2
    thay vì raise.
    """
    return (i & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "big")


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Dynamic truncation theo RFC4226.

    - offset = last_byte & 0x0F
    - lấy 4 byte từ offset, clear MSB (0x7F) cho byte đầu
    - trả về integer 31-bit (unsigned)
    """
    offset = hmac_digest[-1] & 0x0F
    return (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )


def _digestmod(algorithm: str):
    try:
        return ALGORITHMS[algorithm]
    except KeyError:
        raise ValueError(f"Unsupported TOTP algorithm: {algorithm!r}") from None


def hotp(key: bytes, counter: int, digits: int = DEFAULT_DIGITS,
         algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Sinh mã HOTP theo RFC4226 từ key thô.

    Steps:
    1. Message = 8-byte counter (big-endian)
    2. HMAC(key, message) với thuật toán đã chọn
    3. Dynamic truncate -> dbc
    4. otp = dbc % 10^digits, zero-pad đủ "digits" chữ số

    Raises:
        ValueError: nếu algorithm không thuộc SHA-1/SHA-256/SHA-512
    """
    digest = hmac.new(key, int_to_bytes(counter), _digestmod(algorithm)).digest()
    code = dynamic_truncate(digest) % (10 ** digits)
    return str(code).zfill(digits)


# --- TOTP ------------------------------------------------------------------
def generate_totp(
    secret,
    period: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
    algorithm: str = DEFAULT_ALGORITHM,
    timestamp=None,
) -> str:
    """
    Sinh mã TOTP (RFC6238) cho secret Base32.

    Arguments:
        secret: Base32 secret (ký tự lạ bị bỏ qua, xem base32_to_bytes)
        period: chu kỳ (giây), mặc định 30
        digits: số chữ số, mặc định 6
        algorithm: "SHA-1" | "SHA-256" | "SHA-512"
        timestamp: epoch seconds; None -> thời điểm hiện tại

    Trả về:
        str: mã đúng "digits" chữ số. Secret rỗng/hỏng vẫn cho ra mã hợp lệ
        về hình thức (nhưng vô nghĩa); caller phải tự kiểm tra secret rỗng.
    """
    counter = time_step_counter(timestamp, period)
    return hotp(base32_to_bytes(secret), counter, digits, algorithm)


def verify_totp(
    secret,
    token,
    period: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
    algorithm: str = DEFAULT_ALGORITHM,
    window: int = DEFAULT_WINDOW,
    timestamp=None,
) -> bool:
    """
    Xác minh mã TOTP do user nhập.

    Sinh mã cho mọi bước trong [counter - window, counter + window] rồi so với
    str(token).strip(). window=1 -> 3 ứng viên (trước, hiện tại, sau), chịu
    được lệch giờ tối đa window * period giây.

    Không kiểm tra độ dài / ký tự của token (xem is_well_formed_code).
    Không bao giờ raise với token không khớp, chỉ trả False.
    """
    counter = time_step_counter(timestamp, period)
    submitted = str(token).strip().encode("utf-8")
    key = base32_to_bytes(secret)
    matched = False
    for offset in range(-window, window + 1):
        expected = hotp(key, counter + offset, digits, algorithm).encode("ascii")
        # luôn duyệt đủ 2*window+1 ứng viên
        if hmac.compare_digest(expected, submitted):
            matched = True
    return matched


def verify_with_config(config: TotpConfig, token, window: int = DEFAULT_WINDOW,
                       timestamp=None) -> bool:
    """Shortcut: verify_totp với các tham số lấy từ TotpConfig."""
    return verify_totp(
        config.secret,
        token,
        period=config.period,
        digits=config.digits,
        algorithm=config.algorithm,
        window=window,
        timestamp=timestamp,
    )


def is_well_formed_code(token, digits: int = DEFAULT_DIGITS) -> bool:
    """Mã nhập vào có đúng `digits` chữ số thập phân (ASCII) không."""
    if token is None:
        return False
    value = str(token).strip()
    return len(value) == digits and value.isascii() and value.isdigit()


# --- Config parser ---------------------------------------------------------
def _positive_int(raw, default: int) -> int:
    """Đọc số nguyên kiểu parseInt (lấy phần số ở đầu chuỗi); lỗi hoặc <= 0 -> default."""
    match = _LEADING_INT_RE.match(raw or "")
    if not match:
        return default
    value = int(match.group(1))
    return value if value > 0 else default


def parse_totp_config(value) -> TotpConfig:
    """
    Chuẩn hóa chuỗi cấu hình lấy từ store thành TotpConfig.

    - "otpauth://totp/Label?secret=...&digits=8&period=60&algorithm=SHA256"
      -> đọc các query param; thiếu hoặc không dương -> giá trị mặc định.
    - URI parse lỗi -> coi toàn bộ chuỗi là secret, mọi thứ khác mặc định.
    - Chuỗi thường -> chính là Base32 secret, mọi thứ khác mặc định.

    Ví dụ:
        >>> parse_totp_config("ABC23456")
        TotpConfig(secret='ABC23456', digits=6, period=30, algorithm='SHA-1')
    """
    raw = str(value or "").strip()
    if not _OTPAUTH_RE.match(raw):
        return TotpConfig(secret=raw)

    try:
        params = parse_qs(urlsplit(raw).query, keep_blank_values=True)
    except ValueError:
        # fall back to raw
        return TotpConfig(secret=raw)

    def first(name):
        values = params.get(name)
        return values[0] if values else None

    algorithm = URI_ALGORITHMS.get((first("algorithm") or "SHA1").upper(), DEFAULT_ALGORITHM)
    return TotpConfig(
        secret=first("secret") or "",
        digits=_positive_int(first("digits"), DEFAULT_DIGITS),
        period=_positive_int(first("period"), DEFAULT_TIME_STEP),
        algorithm=algorithm,
    )


def seconds_remaining(period: int = DEFAULT_TIME_STEP, timestamp=None) -> int:
    """Số giây còn lại của bước hiện tại (dùng cho CLI hiển thị)."""
    if timestamp is None:
        timestamp = time.time()
    return int(period - (math.floor(timestamp) % period))


# If this module is executed directly, do nothing — it's core-only for import.
if __name__ == "__main__":
    print("otp_core.py is a library module. Import it from the backend or CLI instead of executing directly.")
