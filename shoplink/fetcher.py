"""商品页面获取与页面有效性校验."""

from __future__ import annotations

import logging
import random
import re
import time

import requests

from shoplink.config import (
    ALT_HEADERS,
    BASE_HEADERS,
    FETCH_RETRIES,
    FETCH_RETRY_DELAY,
    MIN_PAGE_LENGTH,
    MIN_PRODUCT_MARKERS,
    REQUEST_TIMEOUT,
    USER_AGENTS,
)
from shoplink.errors import PAGE_ERROR_MARKERS, FetchError, InvalidPageError
from shoplink.models import PlatformDescriptor

logger = logging.getLogger(__name__)

# 商品页面常见的结构标志
PRODUCT_MARKERS = (
    "sku-name",
    "product-title",
    "item-name",
    "goods-name",
    "p-name",
    "summary-price",
    "J-p-",
    "jd-price",
    "product-shop",
    "product-detail",
    "sku-info",
    "itemInfo-wrap",
    "tb-detail-hd",
    "tm-price",
    "tb-rmb-num",
    "tb-property",
    "goods-price",
    "goodsName",
    "window.rawData",
)

# 移动端 -> PC 端链接改写: (模式, 模板)
_DESKTOP_REWRITES = (
    (re.compile(r"//item\.m\.jd\.com/product/(\d+)\.html", re.IGNORECASE), "https://item.jd.com/{}.html"),
    (re.compile(r"//h5\.m\.taobao\.com/awp/core/detail\.htm\?(?:.*&)?id=(\d+)", re.IGNORECASE),
     "https://item.taobao.com/item.htm?id={}"),
    (re.compile(r"//(?:detail\.m|h5\.m)\.tmall\.com/[^?]*\?(?:.*&)?id=(\d+)", re.IGNORECASE),
     "https://detail.tmall.com/item.htm?id={}"),
)


def to_desktop_url(url: str) -> tuple[str, bool]:
    """移动端商品链接改写为 PC 端.

    Returns:
        (链接, 是否改写过)
    """
    for pattern, template in _DESKTOP_REWRITES:
        m = pattern.search(url)
        if m:
            return template.format(m.group(1)), True
    return url, False


def build_headers(platform: PlatformDescriptor | None) -> dict[str, str]:
    """平台对应的浏览器风格请求头."""
    device = platform.device if platform else "pc"
    headers = dict(BASE_HEADERS)
    headers["User-Agent"] = random.choice(USER_AGENTS[device])
    if platform and platform.referer:
        headers["Referer"] = platform.referer
    return headers


def check_product_page(html: str) -> str | None:
    """校验页面是否为有效商品页面.

    Returns:
        无效时返回原因, 有效返回 None.
    """
    if not html:
        return "页面内容为空"

    for marker in PAGE_ERROR_MARKERS:
        if marker in html:
            return f"发现错误标志: {marker}"

    found = sum(1 for m in PRODUCT_MARKERS if m in html)
    if found < MIN_PRODUCT_MARKERS:
        return f"商品页面标志不足 ({found} 个)"

    if len(html) < MIN_PAGE_LENGTH:
        return f"页面内容太短 ({len(html)} 字符)"

    return None


def is_valid_product_page(html: str) -> bool:
    return check_product_page(html) is None


def _find_marker(html: str) -> str | None:
    for marker in PAGE_ERROR_MARKERS:
        if marker in html:
            return marker
    return None


class PageFetcher:
    """带重试的商品页面获取器."""

    def __init__(
        self,
        session: requests.Session | None = None,
        retries: int = FETCH_RETRIES,
        base_delay: float = FETCH_RETRY_DELAY,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.session = session or requests.Session()
        self.retries = retries
        self.base_delay = base_delay
        self.timeout = timeout

    def fetch(self, url: str, platform: PlatformDescriptor | None = None) -> str:
        """获取商品页面 HTML.

        Raises:
            FetchError: 重试耗尽.
            InvalidPageError: 返回 200 但不是有效商品页面.
        """
        target, converted = to_desktop_url(url)
        if converted:
            logger.info("转换为 PC 端链接: %s -> %s", url, target)

        html = self._get_with_retries(target, build_headers(platform))
        reason = check_product_page(html)
        if reason is None:
            logger.info("页面获取成功: %s (%d 字符)", target, len(html))
            return html

        logger.info("检测到无效商品页面: %s (%s)", target, reason)
        if converted:
            logger.info("使用替代请求头重新请求: %s", target)
            headers = dict(ALT_HEADERS)
            headers["User-Agent"] = random.choice(USER_AGENTS["pc"])
            alt_html = self._get_once(target, headers)
            alt_reason = check_product_page(alt_html)
            if alt_reason is None:
                logger.info("使用替代请求头成功获取商品页面")
                return alt_html
            html, reason = alt_html, alt_reason

        raise InvalidPageError(f"无法获取有效的商品页面内容: {reason}", marker=_find_marker(html))

    def _get_with_retries(self, url: str, headers: dict[str, str]) -> str:
        last_error: FetchError | None = None
        for attempt in range(1, self.retries + 1):
            if attempt > 1:
                time.sleep(self.base_delay * (attempt - 1))
            try:
                return self._get_once(url, headers)
            except FetchError as e:
                last_error = e
                logger.warning("抓取重试 %d/%d [%s]: %s", attempt, self.retries, url, e)

        raise FetchError(
            f"页面获取失败, 已重试 {self.retries} 次: {last_error}",
            status_code=last_error.status_code if last_error else None,
            timed_out=last_error.timed_out if last_error else False,
            attempts=self.retries,
        )

    def _get_once(self, url: str, headers: dict[str, str]) -> str:
        try:
            resp = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise FetchError(f"请求超时: {url}", timed_out=True) from e
        except requests.RequestException as e:
            logger.warning("页面请求异常 [%s]: %r", url, e)
            raise FetchError(f"网络请求失败: {url}") from e

        if not 200 <= resp.status_code < 300:
            raise FetchError(
                f"HTTP错误: {resp.status_code} {resp.reason or ''}".strip(),
                status_code=resp.status_code,
            )

        # 未声明字符集时 requests 按 ISO-8859-1 解码, GBK 页面会乱码
        if not resp.encoding or resp.encoding.lower() == "iso-8859-1":
            resp.encoding = resp.apparent_encoding
        return resp.text
