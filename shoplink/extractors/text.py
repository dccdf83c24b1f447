"""文本清洗与数值标准化."""

from __future__ import annotations

import html as html_lib
import math
import re
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")
_NUMBER_PREFIX_RE = re.compile(r"\d+(?:\.\d*)?")
_COUNT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([万千]?)")

_MAGNITUDES = {"万": 10000, "千": 1000, "": 1}


def clean_text(text) -> str:
    """合并空白、去掉标签与实体, 首尾去空格. 空值返回空字符串."""
    if text is None:
        return ""
    value = html_lib.unescape(str(text))
    value = _TAG_RE.sub("", value)
    return _SPACE_RE.sub(" ", value).strip()


def to_number(text) -> float | None:
    """按价格规则把文本转成数值.

    去掉数字和小数点以外的字符, 连续的小数点合并, 开头的小数点补 0,
    取最前面的数字部分. 无法解析或非有限值返回 None.
    """
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        value = float(text)
        return value if math.isfinite(value) else None

    cleaned = re.sub(r"[^\d.]", "", str(text))
    cleaned = re.sub(r"\.{2,}", ".", cleaned)
    if cleaned.startswith("."):
        cleaned = "0" + cleaned
    m = _NUMBER_PREFIX_RE.match(cleaned)
    if not m:
        return None
    value = float(m.group(0))
    return value if math.isfinite(value) else None


def normalize_price(text) -> str | None:
    """价格标准化为两位小数字符串, 未知价格为 None.

    >>> normalize_price("¥1,234.5 元")
    '1234.50'
    """
    value = to_number(text)
    if value is None:
        return None
    return f"{value:.2f}"


def parse_count(text) -> int | None:
    """解析销量/评价数, 支持 万 (x10000) / 千 (x1000) 后缀, 向下取整.

    >>> parse_count("2.3万")
    23000
    """
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, int):
        return text if text >= 0 else None
    if isinstance(text, float):
        return math.floor(text) if math.isfinite(text) and text >= 0 else None

    m = _COUNT_RE.search(str(text).replace(",", ""))
    if not m:
        return None
    try:
        value = Decimal(m.group(1)) * _MAGNITUDES[m.group(2)]
    except InvalidOperation:
        return None
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def parse_rating(text) -> float | None:
    """评分, 只接受 0 到 5 之间的值."""
    value = to_number(text)
    if value is None or value < 0 or value > 5:
        return None
    return value


def split_pair(text: str) -> tuple[str, str] | None:
    """按第一个冒号 (全角或半角) 拆成键值对."""
    m = re.match(r"^([^：:]+)[：:](.+)$", clean_text(text))
    if not m:
        return None
    key, value = m.group(1).strip(), m.group(2).strip()
    if not key or not value:
        return None
    return key, value


def absolute_url(src: str, image_host: str = "") -> str | None:
    """补全图片链接的协议与主机."""
    src = (src or "").strip()
    if not src or src.startswith("data:"):
        return None
    if src.startswith("//"):
        return "https:" + src
    if src.startswith("/") and image_host:
        return image_host.rstrip("/") + src
    if src.startswith("http://") or src.startswith("https://"):
        return src
    return None
