"""错误分类定义.

流水线内部以异常表达失败, 由 service 在边界处统一转换为
success=False 的错误商品, 不会穿出单个/批量解析接口.
"""

from __future__ import annotations

# 错误商品的 error_type 分类
PRODUCT_NOT_FOUND = "product_not_found"
ACCESS_DENIED = "access_denied"
NETWORK_TIMEOUT = "network_timeout"
APP_REQUIRED = "app_required"
DOMAIN_RESTRICTED = "domain_restricted"
EXTRACTION_FAILED = "extraction_failed"

ERROR_TYPES = (
    PRODUCT_NOT_FOUND,
    ACCESS_DENIED,
    NETWORK_TIMEOUT,
    APP_REQUIRED,
    DOMAIN_RESTRICTED,
    EXTRACTION_FAILED,
)


class ShoplinkError(Exception):
    """所有可恢复错误的基类."""

    kind = "error"
    error_type = EXTRACTION_FAILED


class ValidationError(ShoplinkError):
    """链接为空或格式不合法."""

    kind = "validation"
    error_type = DOMAIN_RESTRICTED


class UnsupportedPlatformError(ShoplinkError):
    """域名不属于任何已支持的平台."""

    kind = "unsupported"
    error_type = DOMAIN_RESTRICTED


class RedirectError(ShoplinkError):
    """重定向跟踪失败 (超时、HTTP 错误、网络异常)."""

    kind = "redirect"
    error_type = NETWORK_TIMEOUT

    def __init__(self, message: str, kind: str = "network", status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        if kind == "http_error":
            self.error_type = _error_type_for_status(status_code)


class FetchError(ShoplinkError):
    """页面获取失败 (传输错误或重试耗尽)."""

    kind = "fetch"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        timed_out: bool = False,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.timed_out = timed_out
        self.attempts = attempts
        if timed_out:
            self.error_type = NETWORK_TIMEOUT
        else:
            self.error_type = _error_type_for_status(status_code)

    @property
    def retryable(self) -> bool:
        """429/503 与超时属于上游限流, 稍后重试可能成功."""
        return self.timed_out or self.status_code in (429, 503)


# 反爬/错误页标志 -> error_type
PAGE_ERROR_MARKERS = {
    "商品不存在": PRODUCT_NOT_FOUND,
    "已下架": PRODUCT_NOT_FOUND,
    "页面不存在": PRODUCT_NOT_FOUND,
    "访问受限": ACCESS_DENIED,
    "需要登录": ACCESS_DENIED,
    "亲，请登录": ACCESS_DENIED,
    "验证码": ACCESS_DENIED,
    "活动太火爆": APP_REQUIRED,
    "前往京东APP": APP_REQUIRED,
    "请在APP中打开": APP_REQUIRED,
    "多快好省，购物上京东": APP_REQUIRED,
}


class InvalidPageError(ShoplinkError):
    """HTTP 200 但内容不是有效的商品页面 (软 404、验证页)."""

    kind = "invalid_page"

    def __init__(self, message: str, marker: str | None = None):
        super().__init__(message)
        self.marker = marker
        self.error_type = PAGE_ERROR_MARKERS.get(marker, EXTRACTION_FAILED)


class ExtractionFailure(ShoplinkError):
    """所有策略都无法得到商品标题."""

    kind = "extraction"
    error_type = EXTRACTION_FAILED


def _error_type_for_status(status_code: int | None) -> str:
    if status_code == 404 or status_code == 410:
        return PRODUCT_NOT_FOUND
    if status_code in (401, 403):
        return ACCESS_DENIED
    return NETWORK_TIMEOUT
