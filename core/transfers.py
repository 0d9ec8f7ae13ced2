"""
transfers.py — Chuyển dữ liệu chuyển khoản (collection `transfer`) sang dạng hiển thị / CSV.

Hai dạng dữ liệu song song:
- raw row: giá trị gốc từ store (datetime, bool, số...) -> dùng để sort và đếm
- display row: chuỗi đã chuẩn hóa -> dùng để render bảng và xuất CSV

Nhãn cột giữ nguyên tiếng Nhật vì file CSV được phía vận hành mở bằng Excel.
"""

from datetime import datetime, timedelta, timezone
from functools import cmp_to_key
import csv
import io
import json

TOKYO = timezone(timedelta(hours=9), "Asia/Tokyo")
TOKYO_OFFSET_HOURS = 9

# Thứ tự field của document
FIELDS = [
    "accountNumber",
    "bankCode",
    "bankName",
    "branchCode",
    "branchName",
    "createdAt",
    "deviceName",
    "email",
    "errorInfo",
    "finishedAt",
    "flag",
    "kyash",
    "kyashTransferId",
    "mailwiseId",
    "purchaseAmount",
    "purchasePercent",
    "siteName",
    "transferFee",
    "transferPrice",
    "userName",
    "uuid",
]

# Thứ tự cột khi hiển thị bảng và xuất CSV
DISPLAY_FIELDS = [
    "createdAt",
    "finishedAt",
    "uuid",
    "kyashTransferId",
    "flag",
    "bankName",
    "branchName",
    "accountNumber",
    "bankCode",
    "branchCode",
    "userName",
    "email",
    "siteName",
    "purchaseAmount",
    "purchasePercent",
    "transferFee",
    "transferPrice",
    "deviceName",
    "kyash",
    "mailwiseId",
    "errorInfo",
]

HEADER_LABELS = {
    "accountNumber": "口座番号",
    "bankCode": "銀行コード",
    "bankName": "銀行名",
    "branchCode": "支店コード",
    "branchName": "支店名",
    "createdAt": "振込処理開始日時",
    "deviceName": "デバイス",
    "email": "メールアドレス",
    "errorInfo": "エラー",
    "finishedAt": "振込処理完了日時",
    "flag": "状態",
    "kyash": "Kyash",
    "kyashTransferId": "transfer_id",
    "mailwiseId": "MailWiseID",
    "purchaseAmount": "買取金額",
    "purchasePercent": "買取率",
    "siteName": "番組名",
    "transferFee": "振込手数料",
    "transferPrice": "振込金額",
    "transferPriceBeforeFee": "振込額（手数料控除前）",
    "userName": "振込人名",
    "uuid": "uuid",
}

TIMESTAMP_FIELDS = ("createdAt", "finishedAt")
FLAG_LABELS = {"finish": "振込完了", "error": "エラー"}

DEFAULT_SORT_KEY = "createdAt"

ERROR_INVALID_RANGE_FORMAT = "開始・終了日時の形式が不正です"
ERROR_RANGE_ORDER = "終了日時は開始より後にしてください"


# --- Chuẩn hóa giá trị -----------------------------------------------------
def display_timezone(offset_hours=TOKYO_OFFSET_HOURS):
    """Offset (giờ) -> timezone cố định, 9 -> TOKYO."""
    offset = float(offset_hours)
    if offset == TOKYO_OFFSET_HOURS:
        return TOKYO
    return timezone(timedelta(hours=offset))


def to_tokyo_string(value, tz=TOKYO) -> str:
    """datetime -> 'YYYY/MM/DD HH:MM:SS' theo giờ `tz` (mặc định Tokyo). Giá trị khác -> ''."""
    if not value or not isinstance(value, datetime):
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).strftime("%Y/%m/%d %H:%M:%S")


def _number_to_str(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_value(key: str, value, tz=TOKYO) -> str:
    """
    Chuẩn hóa 1 giá trị theo field để hiển thị.

    - None -> ""
    - createdAt / finishedAt -> giờ theo `tz` (mặc định Tokyo)
    - flag: finish -> 振込完了, error -> エラー
    - kyash: truthy -> "Kyash", falsy -> "GMO"
    - bool -> "true"/"false", số -> chuỗi, object khác -> JSON
    """
    if value is None:
        return ""
    if key in TIMESTAMP_FIELDS:
        return to_tokyo_string(value, tz)
    if key == "flag":
        flag = str(value)
        return FLAG_LABELS.get(flag, flag)
    if key == "kyash":
        return "Kyash" if value else "GMO"
    # bool là subclass của int nên phải xét trước
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number_to_str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return to_tokyo_string(value, tz)
    return json.dumps(value, ensure_ascii=False, default=str)


def normalize_record(raw: dict, tz=TOKYO) -> dict:
    """raw document -> display row (chỉ gồm các key trong FIELDS)."""
    return {key: normalize_value(key, raw.get(key), tz) for key in FIELDS}


# --- Sort / thống kê -------------------------------------------------------
def _compare(a, b) -> int:
    if a is None and b is None:
        return 0
    if a is None:
        return 1  # None xếp cuối
    if b is None:
        return -1
    if isinstance(a, datetime) and isinstance(b, datetime):
        return (a > b) - (a < b)
    if isinstance(a, bool) and isinstance(b, bool):
        return (a > b) - (a < b)
    numeric = (int, float)
    if (isinstance(a, numeric) and not isinstance(a, bool)
            and isinstance(b, numeric) and not isinstance(b, bool)):
        return (a > b) - (a < b)
    # so theo code point, không theo locale
    sa, sb = str(a), str(b)
    return (sa > sb) - (sa < sb)


def sort_records(raw_rows: list, key: str = DEFAULT_SORT_KEY, order: str = "asc") -> list:
    """
    Sắp xếp theo giá trị gốc của `key`.

    Key không hợp lệ -> createdAt. order khác "desc" -> "asc".
    "desc" đảo ngược toàn bộ phép so sánh (None lên đầu), sort vẫn stable.
    """
    if key not in FIELDS:
        key = DEFAULT_SORT_KEY
    sign = -1 if order == "desc" else 1

    def cmp(x, y):
        return sign * _compare(x.get(key), y.get(key))

    return sorted(raw_rows, key=cmp_to_key(cmp))


def count_records(raw_rows: list) -> dict:
    """Đếm số bản ghi hoàn tất / lỗi / Kyash / GMO (falsy kyash = GMO)."""
    normal = sum(1 for row in raw_rows if row.get("flag") == "finish")
    error = sum(1 for row in raw_rows if row.get("flag") == "error")
    kyash = sum(1 for row in raw_rows if row.get("kyash"))
    return {
        "normal": normal,
        "error": error,
        "kyash": kyash,
        "gmo": len(raw_rows) - kyash,
    }


def build_report(raw_rows: list, sort: str = DEFAULT_SORT_KEY, order: str = "asc",
                 tz=TOKYO) -> dict:
    """Gộp sort + chuẩn hóa + đếm: dữ liệu cho cả trang HTML lẫn API JSON."""
    ordered = sort_records(raw_rows, sort, order)
    return {
        "rows": [normalize_record(row, tz) for row in ordered],
        "counts": count_records(raw_rows),
        "total": len(raw_rows),
    }


# --- CSV -------------------------------------------------------------------
def to_csv(display_rows: list) -> str:
    """
    Xuất CSV theo DISPLAY_FIELDS, dòng đầu là nhãn tiếng Nhật.

    Có BOM ở đầu để Excel nhận đúng UTF-8. Field chứa dấu phẩy, nháy kép hoặc
    xuống dòng (LF hoặc CR) được đặt trong nháy kép, nháy kép bên trong nhân đôi.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([HEADER_LABELS.get(key, key) for key in DISPLAY_FIELDS])
    for row in display_rows:
        writer.writerow([row.get(key, "") for key in DISPLAY_FIELDS])
    text = buf.getvalue()
    if text.endswith("\n"):
        text = text[:-1]
    return "\ufeff" + text


def csv_filename(now: datetime = None) -> str:
    """transfer_createdAt_<UTC, tới giây>.csv"""
    if now is None:
        now = datetime.now(timezone.utc)
    return f"transfer_createdAt_{now.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S')}.csv"


# --- Khoảng thời gian tìm kiếm --------------------------------------------
def _parse_local(value: str, tz) -> datetime:
    parsed = datetime.fromisoformat(str(value).strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_range(start, end, tz=TOKYO) -> tuple:
    """
    Parse 2 giá trị datetime-local của form tìm kiếm.

    Giá trị không có timezone được hiểu theo `tz` (mặc định giờ Tokyo).

    Raises:
        ValueError: định dạng sai, hoặc end <= start
    """
    if not start or not end:
        raise ValueError(ERROR_INVALID_RANGE_FORMAT)
    try:
        start_dt = _parse_local(start, tz)
        end_dt = _parse_local(end, tz)
    except ValueError:
        raise ValueError(ERROR_INVALID_RANGE_FORMAT) from None
    if end_dt <= start_dt:
        raise ValueError(ERROR_RANGE_ORDER)
    return start_dt, end_dt


def default_range(now: datetime = None, tz=TOKYO) -> tuple:
    """Mặc định: cả ngày hôm qua (00:00:00 - 23:59:59), dạng chuỗi cho input datetime-local."""
    if now is None:
        now = datetime.now(tz)
    yesterday = now.astimezone(tz) - timedelta(days=1)
    start = yesterday.replace(hour=0, minute=0, second=0, microsecond=0)
    end = yesterday.replace(hour=23, minute=59, second=59, microsecond=0)
    fmt = "%Y-%m-%dT%H:%M:%S"
    return start.strftime(fmt), end.strftime(fmt)
