"""抽取结果的标准化与错误商品生成."""

from __future__ import annotations

import logging
import zlib
from datetime import datetime, timezone

from shoplink import platforms
from shoplink.errors import (
    ACCESS_DENIED,
    APP_REQUIRED,
    DOMAIN_RESTRICTED,
    EXTRACTION_FAILED,
    NETWORK_TIMEOUT,
    PRODUCT_NOT_FOUND,
    ShoplinkError,
    ValidationError,
)
from shoplink.extractors.text import clean_text, normalize_price, parse_count, parse_rating
from shoplink.models import AVAILABILITY_VALUES, UNKNOWN, Product, RawProductFields, ResolvedUrl, ShopInfo
from shoplink.resolver import normalize_url

logger = logging.getLogger(__name__)

TITLE_UNAVAILABLE = "商品标题获取失败"

# 商品 ID 优先使用的链接参数
NATIVE_ID_PARAMS = ("id", "goods_id", "item_id", "sku")

ERROR_DESCRIPTIONS = {
    PRODUCT_NOT_FOUND: "商品不存在或已下架",
    ACCESS_DENIED: "访问受限, 需要登录或权限验证",
    NETWORK_TIMEOUT: "网络超时, 请稍后重试",
    APP_REQUIRED: "该链接需要在APP中打开",
    DOMAIN_RESTRICTED: "链接无效或暂不支持该平台",
    EXTRACTION_FAILED: "商品页面解析失败",
}

SUGGESTIONS = {
    PRODUCT_NOT_FOUND: "请检查商品链接是否正确, 或尝试使用其他商品链接",
    ACCESS_DENIED: "请尝试使用有效的商品链接, 避免使用需要登录的链接",
    NETWORK_TIMEOUT: "请检查网络连接, 稍后重试",
    APP_REQUIRED: "请在对应的购物APP中打开此链接, 或改用完整的商品详情页链接",
    DOMAIN_RESTRICTED: "请使用淘宝、天猫、京东或拼多多的商品详情页链接",
    EXTRACTION_FAILED: "请尝试使用完整的商品详情页链接代替短链接, 或稍后重试",
}

# 异常类型无法判断时按错误信息中的关键词分类, 按顺序匹配
_KEYWORD_TYPES = (
    (("404", "不存在", "已下架"), PRODUCT_NOT_FOUND),
    (("403", "访问受限", "需要登录", "验证码"), ACCESS_DENIED),
    (("超时", "timeout", "timed out"), NETWORK_TIMEOUT),
    (("活动太火爆", "前往京东APP", "APP中打开"), APP_REQUIRED),
    (("不支持", "无效", "unsupported"), DOMAIN_RESTRICTED),
)


def url_hash(url: str) -> str:
    """链接的确定性短哈希 (8 位十六进制)."""
    return format(zlib.crc32(url.encode("utf-8")), "08x")


def make_product_id(resolved: ResolvedUrl, original_url: str) -> str:
    """生成商品 ID.

    有平台原生 ID 时为 {平台}_{原生ID}, 否则为 {平台}_{标准化链接的哈希}.
    同一链接 (去掉追踪参数后) 总是得到相同的 ID.
    """
    key = resolved.platform.key if resolved.platform else "UNKNOWN"
    for name in NATIVE_ID_PARAMS:
        value = resolved.extracted_params.get(name)
        if value:
            return f"{key}_{value}"

    try:
        basis = normalize_url(original_url)
    except ValidationError:
        basis = original_url
    return f"{key}_{url_hash(basis)}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize(raw: RawProductFields, resolved: ResolvedUrl, original_url: str) -> Product:
    """原始字段 + 解析结果 -> 标准 Product.

    Args:
        raw: 抽取阶段的字段.
        resolved: 链接解析结果, platform 不能为 None.
        original_url: 用户输入的链接.

    Raises:
        ValueError: resolved.platform 为 None.
    """
    if resolved.platform is None:
        raise ValueError("resolved.platform is required")

    title = clean_text(raw.title)
    if not title:
        logger.warning("未取到商品标题, 使用默认值: %s", original_url)
        title = TITLE_UNAVAILABLE

    images = [u for u in dict.fromkeys(raw.images) if u]
    availability = raw.availability if raw.availability in AVAILABILITY_VALUES else UNKNOWN

    return Product(
        id=make_product_id(resolved, original_url),
        title=title,
        price=normalize_price(raw.price),
        original_price=normalize_price(raw.original_price),
        platform=resolved.platform.display_name,
        platform_key=resolved.platform.key,
        original_link=original_url,
        clean_link=resolved.clean_url or resolved.final_url,
        final_url=resolved.final_url,
        is_short_link=resolved.is_short_link,
        parse_time=_now(),
        image=images[0] if images else None,
        images=images,
        brand=clean_text(raw.brand),
        model=clean_text(raw.model),
        specifications=dict(raw.specifications),
        description=clean_text(raw.description),
        shop=ShopInfo(name=raw.shop.name or None, location=raw.shop.location or None),
        rating=parse_rating(raw.rating),
        sales=parse_count(raw.sales),
        review_count=parse_count(raw.review_count),
        availability=availability,
        params=dict(raw.params),
        shipping=clean_text(raw.shipping),
    )


def classify_error(error) -> str:
    """异常或错误信息 -> error_type.

    ShoplinkError 直接使用自身的分类, 其他情况按关键词判断.
    """
    if isinstance(error, ShoplinkError):
        return error.error_type
    message = str(error)
    lowered = message.lower()
    for keywords, error_type in _KEYWORD_TYPES:
        if any(k.lower() in lowered for k in keywords):
            return error_type
    return EXTRACTION_FAILED


def create_error_product(url, error) -> Product:
    """生成 success=False 的错误商品.

    平台直接从链接字符串推断, 不依赖链接解析结果.
    ShoplinkError 的信息直接作为 error, 其他异常只给出分类说明.
    """
    original = url if isinstance(url, str) else ("" if url is None else str(url))
    error_type = classify_error(error)
    platform = platforms.infer_platform(original)
    if isinstance(error, (ShoplinkError, str)) and str(error):
        message = str(error)
    else:
        message = ERROR_DESCRIPTIONS[error_type]
        logger.debug("错误商品使用分类说明代替原始异常: %r", error)

    return Product(
        id=f"error_{url_hash(original)}",
        title=None,
        price=None,
        platform=platform.display_name if platform else "未知平台",
        platform_key=platform.key if platform else "unknown",
        original_link=original,
        clean_link=original,
        final_url=original,
        parse_time=_now(),
        success=False,
        description=ERROR_DESCRIPTIONS[error_type],
        error=message,
        error_type=error_type,
        suggestion=SUGGESTIONS[error_type],
    )
