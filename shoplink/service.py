"""商品解析流程.

处理流程:
  1. UrlResolver 解析链接 (平台识别、短链接重定向)
  2. 商品缓存命中则直接返回
  3. PageFetcher 获取并校验商品页面
  4. 按平台抽取字段, 标准化为 Product
  5. 保存到 Store 与缓存

流程中的 ShoplinkError 都在此转换为 success=False 的错误商品.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from shoplink import extractors
from shoplink.cache import MemoryCache
from shoplink.config import (
    BATCH_WORKERS,
    MAX_BATCH_SIZE,
    PERSISTENCE_ENABLED,
    PRICE_HISTORY_DAYS_DEFAULT,
    PRICE_HISTORY_DAYS_MAX,
    PRODUCT_CACHE_TTL,
)
from shoplink.errors import ExtractionFailure, ShoplinkError, ValidationError
from shoplink.extractors.text import to_number
from shoplink.fetcher import PageFetcher
from shoplink.history import ParseHistory, ParseRecord
from shoplink.models import BatchResult, Product, ResolveBatchResult
from shoplink.normalizer import create_error_product, make_product_id, normalize
from shoplink.resolver import UrlResolver

logger = logging.getLogger(__name__)


def _default_store():
    if not PERSISTENCE_ENABLED:
        logger.info("Supabase 未配置, 不保存商品数据")
        return None
    from shoplink import db

    return db


def _product_key(product_id: str) -> str:
    return f"product:{product_id}"


class ProductService:
    """单个 / 批量商品解析的入口.

    Args:
        resolver: 链接解析器.
        fetcher: 页面获取器.
        cache: 商品缓存, 默认与 resolver 共用.
        store: 持久化 (save_product / get_product_by_id / get_price_history),
            None 时不保存.
        history: 解析记录.
    """

    def __init__(
        self,
        resolver: UrlResolver | None = None,
        fetcher: PageFetcher | None = None,
        cache: MemoryCache | None = None,
        store=...,
        history: ParseHistory | None = None,
    ):
        self.resolver = resolver or UrlResolver(cache=cache)
        self.fetcher = fetcher or PageFetcher()
        self.cache = cache if cache is not None else self.resolver.cache
        self.store = _default_store() if store is ... else store
        self.history = history or ParseHistory()

    def parse_product(self, url) -> Product:
        """解析一个商品链接. 失败时返回错误商品, 不抛异常."""
        start = time.perf_counter()
        try:
            product = self._parse(url)
        except ShoplinkError as e:
            logger.error("商品解析失败 [%s]: %s", url, e)
            product = create_error_product(url, e)

        duration_ms = (time.perf_counter() - start) * 1000
        self.history.record(ParseRecord(
            url=url if isinstance(url, str) else str(url),
            product_id=product.id,
            success=product.success,
            duration_ms=duration_ms,
            error_type=product.error_type,
        ))
        return product

    def _parse(self, url) -> Product:
        resolved = self.resolver.resolve(url)
        resolved.raise_for_error()
        if resolved.warning:
            logger.warning("重定向未完全跟踪 [%s]: %s", url, resolved.warning)
        if resolved.error:
            logger.warning("使用未完全解析的链接继续 [%s]: %s", url, resolved.error)

        product_id = make_product_id(resolved, url)
        cached = self.cache.get(_product_key(product_id))
        if cached is not None:
            logger.info("从缓存获取商品数据: %s", product_id)
            # 链接相关字段以本次输入为准
            return replace(
                cached,
                original_link=url,
                clean_link=resolved.clean_url or resolved.final_url,
                final_url=resolved.final_url,
                is_short_link=resolved.is_short_link,
            )

        target = resolved.clean_url or resolved.final_url
        html = self.fetcher.fetch(target, resolved.platform)
        raw = extractors.extract(html, resolved.platform)
        if not raw.title:
            raise ExtractionFailure(f"无法从页面提取商品标题: {target}")

        product = normalize(raw, resolved, url)
        self._save(product)
        self.cache.set(_product_key(product.id), product, PRODUCT_CACHE_TTL)
        logger.info("商品解析成功: [%s] %s %s", product.platform, product.title, product.price)
        return product

    def _save(self, product: Product) -> None:
        if self.store is None:
            return
        try:
            self.store.save_product(product)
        except Exception:
            logger.exception("商品保存失败: %s", product.id)

    def _parse_isolated(self, url) -> Product:
        try:
            return self.parse_product(url)
        except Exception as e:
            logger.exception("批量解析中出现未预期的错误 [%s]", url)
            return create_error_product(url, e)

    def parse_products(self, urls: list[str]) -> BatchResult:
        """批量解析, 结果与输入顺序一致, 单个失败不影响其他.

        Raises:
            ValidationError: 列表为空或超过上限.
        """
        if not urls:
            raise ValidationError("请提供商品链接列表")
        if len(urls) > MAX_BATCH_SIZE:
            raise ValidationError(f"批量解析最多支持 {MAX_BATCH_SIZE} 个链接")

        logger.info("开始批量解析, 共 %d 个链接", len(urls))
        with ThreadPoolExecutor(max_workers=BATCH_WORKERS) as executor:
            products = list(executor.map(self._parse_isolated, urls))

        success = sum(1 for p in products if p.success)
        logger.info("批量解析完成: %d/%d 成功", success, len(urls))
        return BatchResult(
            products=products,
            summary={"total": len(urls), "success": success, "failed": len(urls) - success},
        )

    def resolve_links(self, urls: list[str]) -> ResolveBatchResult:
        """只解析链接 (不抓取页面)."""
        return self.resolver.resolve_many(urls)

    def get_product_by_id(self, product_id: str) -> Product | None:
        """先查缓存, 再查 Store. Store 命中时写回缓存."""
        cached = self.cache.get(_product_key(product_id))
        if cached is not None:
            return cached
        if self.store is None:
            return None

        product = self.store.get_product_by_id(product_id)
        if product is not None:
            self.cache.set(_product_key(product_id), product, PRODUCT_CACHE_TTL)
        return product

    def get_price_history(self, product_id: str, days: int = PRICE_HISTORY_DAYS_DEFAULT) -> dict:
        """价格历史与趋势分析.

        Raises:
            ValidationError: days 不在 1 到 365 之间.
        """
        if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= PRICE_HISTORY_DAYS_MAX:
            raise ValidationError(f"days 必须在 1 到 {PRICE_HISTORY_DAYS_MAX} 之间")

        history = self.store.get_price_history(product_id, days) if self.store is not None else []
        return {
            "product_id": product_id,
            "days": days,
            "history": history,
            "trends": analyze_price_trends(history),
        }

    def parse_stats(self) -> dict:
        return self.history.stats()


def analyze_price_trends(history: list[dict]) -> dict:
    """比较最近两个价格点.

    Returns:
        {"trend": "up" | "down" | "stable", "change": float,
         "change_percent": float, "analysis": str}
    """
    prices = [p for p in (to_number(h.get("price")) for h in history) if p is not None]
    if len(prices) < 2:
        return {"trend": "stable", "change": 0.0, "change_percent": 0.0, "analysis": "数据不足"}

    previous, latest = prices[-2], prices[-1]
    change = round(latest - previous, 2)
    change_percent = round(change / previous * 100, 2) if previous else 0.0

    if change > 0:
        trend = "up"
    elif change < 0:
        trend = "down"
    else:
        trend = "stable"

    return {
        "trend": trend,
        "change": change,
        "change_percent": change_percent,
        "analysis": _trend_analysis(trend, change_percent),
    }


def _trend_analysis(trend: str, change_percent: float) -> str:
    if trend == "stable":
        return "价格保持稳定"
    magnitude = abs(change_percent)
    if magnitude > 10:
        level = "大幅"
    elif magnitude > 5:
        level = "明显"
    else:
        level = "小幅"
    direction = "上涨" if trend == "up" else "下跌"
    return f"价格{level}{direction} {magnitude:.2f}%"
