"""ProductService 的单元测试. 网络与 Store 全部使用 mock."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from shoplink.cache import MemoryCache
from shoplink.errors import (
    APP_REQUIRED,
    DOMAIN_RESTRICTED,
    EXTRACTION_FAILED,
    NETWORK_TIMEOUT,
    FetchError,
    InvalidPageError,
    ValidationError,
)
from shoplink.history import ParseHistory
from shoplink.models import Product
from shoplink.normalizer import ERROR_DESCRIPTIONS
from shoplink.platforms import JD
from shoplink.resolver import UrlResolver
from shoplink.service import ProductService, analyze_price_trends

FIXTURES_DIR = Path(__file__).parent / "fixtures"

JD_URL = "https://item.jd.com/100012043978.html"
TMALL_URL = "https://detail.tmall.com/item.htm?id=712345678901"

FIXTURE_BY_PLATFORM = {
    "JD": "jd_product.html",
    "TMALL": "tmall_product.html",
    "TAOBAO": "taobao_product.html",
    "PDD": "pdd_product.html",
}


def _load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def _fetch_fixture(url, platform):
    return _load_fixture(FIXTURE_BY_PLATFORM[platform.key])


def _service(fetcher=None, store=None, history=None):
    cache = MemoryCache()
    if fetcher is None:
        fetcher = MagicMock()
        fetcher.fetch.side_effect = _fetch_fixture
    session = MagicMock()
    resolver = UrlResolver(session=session, cache=cache)
    service = ProductService(
        resolver=resolver,
        fetcher=fetcher,
        cache=cache,
        store=store,
        history=history or ParseHistory(),
    )
    return service, session


class TestParseProduct:
    """parse_product 的测试."""

    def test_jd_success(self):
        store = MagicMock()
        service, _ = _service(store=store)

        product = service.parse_product(JD_URL + "?spm=a.b.c")

        assert product.success
        assert product.id == "JD_100012043978"
        assert product.platform == "京东"
        assert product.title == "华为 HUAWEI Mate 60 Pro 12GB+512GB 雅川青"
        assert product.price == "6999.00"
        assert product.clean_link == JD_URL
        assert product.error is None
        store.save_product.assert_called_once_with(product)
        service.fetcher.fetch.assert_called_once_with(JD_URL, JD)

    def test_served_from_cache(self):
        """同一商品第二次解析不再抓取页面."""
        service, _ = _service()

        first = service.parse_product(JD_URL)
        second = service.parse_product(JD_URL + "?utm_source=wechat")

        assert second.id == first.id
        assert second.title == first.title
        assert second.price == first.price
        assert service.fetcher.fetch.call_count == 1

    def test_cache_hit_keeps_own_links(self):
        """缓存命中时链接相关字段描述本次输入, 不返回缓存中的同一对象."""
        service, _ = _service()
        tracked = JD_URL + "?spm=tracking-A"

        first = service.parse_product(tracked)
        second = service.parse_product(JD_URL)

        assert first.original_link == tracked
        assert second.original_link == JD_URL
        assert second.clean_link == JD_URL
        assert second.final_url == JD_URL
        assert not second.is_short_link
        assert second is not first
        assert service.get_product_by_id(first.id).original_link == tracked

    def test_tracking_variants_share_id(self):
        service, _ = _service()
        a = service.parse_product(JD_URL + "?spm=1")
        b = service.parse_product(JD_URL + "?pps=2&utm_campaign=x")
        assert a.id == b.id

    def test_invalid_url_no_network(self):
        """"not a url" 返回错误商品, 不发任何请求."""
        service, session = _service()

        product = service.parse_product("not a url")

        assert not product.success
        assert product.error_type == DOMAIN_RESTRICTED
        assert product.title is None
        assert product.price is None
        session.get.assert_not_called()
        service.fetcher.fetch.assert_not_called()

    def test_unsupported_platform(self):
        service, _ = _service()
        product = service.parse_product("https://www.amazon.com/dp/B0C1234567")

        assert not product.success
        assert product.error_type == DOMAIN_RESTRICTED
        assert product.platform == "未知平台"

    def test_app_required_page(self):
        fetcher = MagicMock()
        fetcher.fetch.side_effect = InvalidPageError("页面无效: 活动太火爆", marker="活动太火爆")
        service, _ = _service(fetcher=fetcher)

        product = service.parse_product(JD_URL)

        assert not product.success
        assert product.error_type == APP_REQUIRED
        assert product.platform == "京东"
        assert product.suggestion

    def test_fetch_timeout(self):
        fetcher = MagicMock()
        fetcher.fetch.side_effect = FetchError("请求超时", timed_out=True, attempts=3)
        service, _ = _service(fetcher=fetcher)

        product = service.parse_product(JD_URL)

        assert product.error_type == NETWORK_TIMEOUT

    def test_no_title(self):
        """所有策略都取不到标题时为 extraction_failed."""
        fetcher = MagicMock()
        fetcher.fetch.return_value = "<html><body><p>空白</p></body></html>"
        service, _ = _service(fetcher=fetcher)

        product = service.parse_product(JD_URL)

        assert not product.success
        assert product.error_type == EXTRACTION_FAILED

    def test_store_failure_does_not_fail_parse(self):
        store = MagicMock()
        store.save_product.side_effect = RuntimeError("connection refused")
        service, _ = _service(store=store)

        product = service.parse_product(JD_URL)

        assert product.success
        store.save_product.assert_called_once()

    def test_history_recorded(self):
        service, _ = _service()
        service.parse_product(JD_URL)
        service.parse_product("not a url")

        stats = service.parse_stats()
        assert stats["total"] == 2
        assert stats["success"] == 1
        assert stats["failed"] == 1
        assert stats["success_rate"] == 50.0


class TestParseProducts:
    """parse_products 的测试."""

    def test_order_and_summary(self):
        """第 2 个链接无效时, 结果顺序不变, 其他链接照常解析."""
        service, _ = _service()
        urls = [JD_URL, "not a url", TMALL_URL]

        batch = service.parse_products(urls)

        assert [p.original_link for p in batch.products] == urls
        assert [p.success for p in batch.products] == [True, False, True]
        assert batch.products[1].error_type == DOMAIN_RESTRICTED
        assert batch.products[2].platform == "天猫"
        assert batch.summary == {"total": 3, "success": 2, "failed": 1}

    def test_unexpected_error_isolated(self):
        fetcher = MagicMock()
        fetcher.fetch.side_effect = [RuntimeError("boom")]
        service, _ = _service(fetcher=fetcher)

        batch = service.parse_products([JD_URL, "not a url"])

        assert [p.success for p in batch.products] == [False, False]
        assert batch.products[0].error == ERROR_DESCRIPTIONS[EXTRACTION_FAILED]
        assert "boom" not in batch.products[0].error
        assert batch.summary["failed"] == 2

    def test_limits(self):
        service, _ = _service()
        with pytest.raises(ValidationError):
            service.parse_products([])
        with pytest.raises(ValidationError):
            service.parse_products([JD_URL] * 11)

    def test_to_dict(self):
        service, _ = _service()
        data = service.parse_products([JD_URL]).to_dict()
        assert data["summary"]["total"] == 1
        assert data["products"][0]["shop"]["name"] == "华为京东自营官方旗舰店"


class TestResolveLinks:
    """resolve_links 的测试."""

    def test_no_fetch(self):
        service, _ = _service()
        result = service.resolve_links([JD_URL, TMALL_URL])

        assert result.summary["success"] == 2
        service.fetcher.fetch.assert_not_called()


class TestGetProductById:
    """get_product_by_id 的测试."""

    def test_from_cache(self):
        store = MagicMock()
        service, _ = _service(store=store)
        product = service.parse_product(JD_URL)

        assert service.get_product_by_id(product.id) is product
        store.get_product_by_id.assert_not_called()

    def test_from_store_then_cached(self):
        stored = Product(
            id="PDD_42",
            title="抽纸",
            price="19.90",
            platform="拼多多",
            platform_key="PDD",
            original_link="https://mobile.yangkeduo.com/goods.html?goods_id=42",
            clean_link="https://mobile.yangkeduo.com/goods.html?goods_id=42",
            final_url="https://mobile.yangkeduo.com/goods.html?goods_id=42",
            parse_time="2026-10-01T00:00:00+00:00",
        )
        store = MagicMock()
        store.get_product_by_id.return_value = stored
        service, _ = _service(store=store)

        assert service.get_product_by_id("PDD_42") is stored
        assert service.get_product_by_id("PDD_42") is stored
        store.get_product_by_id.assert_called_once_with("PDD_42")

    def test_missing(self):
        store = MagicMock()
        store.get_product_by_id.return_value = None
        service, _ = _service(store=store)
        assert service.get_product_by_id("JD_0") is None

    def test_without_store(self):
        service, _ = _service()
        assert service.get_product_by_id("JD_0") is None


class TestGetPriceHistory:
    """get_price_history 的测试."""

    def test_history_and_trends(self):
        history = [
            {"price": "100.00", "availability": "in_stock", "date": "2026-10-01T00:00:00+00:00"},
            {"price": "112.00", "availability": "in_stock", "date": "2026-10-02T00:00:00+00:00"},
        ]
        store = MagicMock()
        store.get_price_history.return_value = history
        service, _ = _service(store=store)

        result = service.get_price_history("JD_1", days=7)

        store.get_price_history.assert_called_once_with("JD_1", 7)
        assert result["product_id"] == "JD_1"
        assert result["days"] == 7
        assert result["history"] == history
        assert result["trends"] == {
            "trend": "up",
            "change": 12.0,
            "change_percent": 12.0,
            "analysis": "价格大幅上涨 12.00%",
        }

    def test_default_days(self):
        store = MagicMock()
        store.get_price_history.return_value = []
        service, _ = _service(store=store)

        result = service.get_price_history("JD_1")

        assert result["days"] == 30
        assert result["trends"]["analysis"] == "数据不足"

    @pytest.mark.parametrize("days", [0, 366, -1, True, "7"])
    def test_invalid_days(self, days):
        service, _ = _service(store=MagicMock())
        with pytest.raises(ValidationError):
            service.get_price_history("JD_1", days=days)


class TestAnalyzePriceTrends:
    """analyze_price_trends 的测试."""

    def test_small_drop(self):
        trends = analyze_price_trends([{"price": "100"}, {"price": "97"}])
        assert trends["trend"] == "down"
        assert trends["change"] == -3.0
        assert trends["change_percent"] == -3.0
        assert trends["analysis"] == "价格小幅下跌 3.00%"

    def test_noticeable_rise(self):
        trends = analyze_price_trends([{"price": "50"}, {"price": "100"}, {"price": "108"}])
        assert trends["analysis"] == "价格明显上涨 8.00%"

    def test_stable(self):
        trends = analyze_price_trends([{"price": "9.90"}, {"price": "9.90"}])
        assert trends["trend"] == "stable"
        assert trends["analysis"] == "价格保持稳定"

    def test_unknown_prices_skipped(self):
        trends = analyze_price_trends([{"price": "100"}, {"price": None}])
        assert trends["analysis"] == "数据不足"
        assert trends["change"] == 0.0
