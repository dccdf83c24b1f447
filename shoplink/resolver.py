"""链接解析与短链接重定向跟踪.

处理流程:
  1. 空值 / 非字符串 / 格式不合法的输入直接判为 validation 错误
  2. 补全协议, 去掉追踪参数 (保留商品 ID 等白名单参数)
  3. 识别平台, 未知域名判为 unsupported
  4. 短链接逐跳跟踪 3xx (最多 10 跳, 每跳间隔 200ms), 最终链接重新识别平台
  5. 从最终链接提取参数

resolve() 不抛异常, 所有失败都体现在 ResolvedUrl.error / error_kind 上.
"""

from __future__ import annotations

import logging
import random
import re
import time
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

import requests

from shoplink import platforms
from shoplink.cache import MemoryCache, hash_key
from shoplink.config import (
    BASE_HEADERS,
    BATCH_WORKERS,
    MAX_REDIRECTS,
    MAX_RESOLVE_BATCH_SIZE,
    REDIRECT_CACHE_TTL,
    REDIRECT_DELAY,
    REQUEST_TIMEOUT,
    USER_AGENTS,
)
from shoplink.errors import RedirectError, ValidationError
from shoplink.models import ResolvedUrl, ResolveBatchResult

logger = logging.getLogger(__name__)

# 去追踪参数时保留的查询参数 (小写比较)
KEEP_QUERY_PARAMS = frozenset({
    "id",
    "sku",
    "skuid",
    "goods_id",
    "item_id",
    "itemid",
    "tk",
    "goods_sign",
})

_HOST_PATTERN = re.compile(r"^[a-z0-9.-]+\.[a-z]{2,}$|^\d{1,3}(?:\.\d{1,3}){3}$", re.IGNORECASE)


def ensure_scheme(url: str) -> str:
    """补全协议并去掉首尾空白."""
    text = url.strip()
    if text.startswith("//"):
        return "https:" + text
    if not re.match(r"^https?://", text, re.IGNORECASE):
        return "https://" + text
    return text


def validate_url(url) -> str:
    """校验输入并返回补全协议后的链接.

    Raises:
        ValidationError: 空值、非字符串或无法解析为网址.
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("链接不能为空")
    candidate = ensure_scheme(url)
    try:
        parts = urlsplit(candidate)
    except ValueError as e:
        raise ValidationError(f"请输入有效的商品链接: {url}") from e
    host = parts.hostname or ""
    if " " in parts.netloc or not _HOST_PATTERN.match(host):
        raise ValidationError(f"请输入有效的商品链接: {url}")
    return candidate


def strip_tracking_params(url: str) -> str:
    """去掉白名单以外的查询参数与片段."""
    parts = urlsplit(url)
    kept = [
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=False)
        if k.lower() in KEEP_QUERY_PARAMS
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), ""))


def normalize_url(url: str) -> str:
    """补全协议 + 去追踪参数. 输入不合法时抛 ValidationError."""
    return strip_tracking_params(validate_url(url))


class UrlResolver:
    """链接解析器, 持有重定向结果缓存与 HTTP 会话."""

    def __init__(
        self,
        session: requests.Session | None = None,
        cache: MemoryCache | None = None,
        max_redirects: int = MAX_REDIRECTS,
        timeout: float = REQUEST_TIMEOUT,
        delay: float = REDIRECT_DELAY,
    ):
        self.session = session or requests.Session()
        self.cache = cache if cache is not None else MemoryCache()
        self.max_redirects = max_redirects
        self.timeout = timeout
        self.delay = delay

    def resolve(self, original_url) -> ResolvedUrl:
        """解析一个链接. 不抛异常."""
        if not isinstance(original_url, str):
            return _failed("" if original_url is None else str(original_url), "链接不能为空", "validation")

        cache_key = hash_key("redirect", original_url)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("使用缓存的解析结果: %s", original_url)
            return cached

        result = self._resolve(original_url)
        # 只缓存没有错误的结果
        if result.error is None:
            self.cache.set(cache_key, result, REDIRECT_CACHE_TTL)
        return result

    def _resolve(self, original_url: str) -> ResolvedUrl:
        try:
            candidate = validate_url(original_url)
        except ValidationError as e:
            logger.warning("链接校验失败: %s", e)
            return _failed(original_url, str(e), "validation")

        platform = platforms.identify(candidate)
        if platform is None:
            supported = "、".join(platforms.supported_platforms())
            return _failed(
                original_url,
                f"暂不支持该电商平台, 目前支持: {supported}",
                "unsupported",
            )

        if not platforms.is_short_link(candidate, platform):
            final_url = strip_tracking_params(candidate)
            path = (original_url,) if final_url == original_url else (original_url, final_url)
            return ResolvedUrl(
                original_url=original_url,
                final_url=final_url,
                clean_url=final_url,
                platform=platform,
                is_short_link=False,
                redirect_path=path,
                extracted_params=platforms.extract_params(final_url, platform),
                url_type=platforms.classify_url_type(final_url, platform),
            )

        logger.info("检测到短链接, 开始跟踪重定向: %s", original_url)
        try:
            hops, warning = self.follow_redirects(candidate)
        except RedirectError as e:
            logger.warning("重定向跟踪失败, 使用原始链接: %s (%s)", original_url, e)
            return ResolvedUrl(
                original_url=original_url,
                final_url=original_url,
                clean_url=candidate,
                platform=platform,
                is_short_link=True,
                redirect_path=(original_url,),
                extracted_params=platforms.extract_params(candidate, platform),
                url_type="short_link",
                error=str(e),
                error_kind=e.kind,
            )

        # hops[0] 是补全协议后的原始链接
        path = (original_url,) + tuple(hops[1:])
        final_url = path[-1]
        final_platform = platforms.identify(final_url)
        if final_platform is None:
            logger.warning("重定向目标不是已支持的商品页面: %s", final_url)
            return ResolvedUrl(
                original_url=original_url,
                final_url=final_url,
                clean_url=final_url,
                platform=None,
                is_short_link=True,
                redirect_path=path,
                redirect_count=len(path) - 1,
                warning=warning,
                error=f"重定向目标不是已支持的商品页面: {final_url}",
                error_kind="unsupported",
            )

        clean_url = strip_tracking_params(ensure_scheme(final_url))
        logger.info("重定向跟踪完成: %s -> %s (%d 跳)", original_url, final_url, len(path) - 1)
        return ResolvedUrl(
            original_url=original_url,
            final_url=final_url,
            clean_url=clean_url,
            platform=final_platform,
            is_short_link=True,
            redirect_path=path,
            redirect_count=len(path) - 1,
            extracted_params=platforms.extract_params(final_url, final_platform),
            url_type=platforms.classify_url_type(final_url, final_platform),
            warning=warning,
        )

    def follow_redirects(self, url: str) -> tuple[list[str], str | None]:
        """逐跳跟踪 3xx 重定向.

        Returns:
            (访问过的链接列表, 警告). 列表首项为 url, 末项为最终链接.
            达到跳数上限、出现循环或 Location 缺失时带警告返回已走到的位置.

        Raises:
            RedirectError: 超时、非重定向的 HTTP 错误或网络异常.
        """
        path = [url]
        current = url
        headers = dict(BASE_HEADERS)
        headers["User-Agent"] = random.choice(USER_AGENTS["pc"])

        for hop in range(self.max_redirects):
            logger.info("第 %d 次请求: %s", hop + 1, current)
            try:
                resp = self.session.get(
                    current,
                    headers=headers,
                    timeout=self.timeout,
                    allow_redirects=False,
                )
            except requests.Timeout as e:
                raise RedirectError(f"请求超时: {current}", kind="timeout") from e
            except requests.RequestException as e:
                logger.warning("重定向请求异常 [%s]: %r", current, e)
                raise RedirectError(f"网络请求失败: {current}", kind="network") from e

            status = resp.status_code
            if 300 <= status < 400:
                location = resp.headers.get("Location")
                if not location:
                    logger.warning("重定向响应缺少 Location 头: %s %d", current, status)
                    return path, f"重定向响应缺少 Location 头 ({status})"

                next_url = urljoin(current, location.strip())
                if next_url in path:
                    logger.warning("检测到重定向循环: %s", next_url)
                    return path, f"检测到重定向循环: {next_url}"

                logger.info("检测到重定向: %s -> %s", current, next_url)
                path.append(next_url)
                current = next_url
                time.sleep(self.delay)
                continue

            if status >= 400:
                raise RedirectError(
                    f"HTTP错误: {status} {resp.reason or ''}".strip(),
                    kind="http_error",
                    status_code=status,
                )
            return path, None

        logger.warning("达到最大重定向次数 (%d), 当前链接: %s", self.max_redirects, current)
        return path, f"达到最大重定向次数限制 ({self.max_redirects})"

    def resolve_many(self, urls: list[str]) -> ResolveBatchResult:
        """批量解析, 结果与输入顺序一致, 单个失败不影响其他."""
        if not urls:
            raise ValidationError("请提供链接列表")
        if len(urls) > MAX_RESOLVE_BATCH_SIZE:
            raise ValidationError(f"批量解析最多支持 {MAX_RESOLVE_BATCH_SIZE} 个链接")

        logger.info("开始批量解析重定向, 共 %d 个链接", len(urls))
        with ThreadPoolExecutor(max_workers=BATCH_WORKERS) as executor:
            results = list(executor.map(self.resolve, urls))

        success = sum(1 for r in results if r.ok and r.error is None)
        logger.info("批量重定向解析完成: %d/%d 成功", success, len(urls))
        return ResolveBatchResult(
            results=results,
            summary={"total": len(urls), "success": success, "failed": len(urls) - success},
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict[str, int]:
        return self.cache.stats()


def _failed(original_url: str, message: str, kind: str) -> ResolvedUrl:
    return ResolvedUrl(
        original_url=original_url,
        final_url=original_url,
        clean_url=original_url,
        platform=None,
        redirect_path=(original_url,),
        error=message,
        error_kind=kind,
    )
