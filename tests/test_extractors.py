"""各平台抽取规则的单元测试."""

from pathlib import Path

import pytest

from shoplink import extractors
from shoplink.extractors.base import FieldRule, PlatformRules, RuleExtractor, deep_get, label_pattern, scan_price
from shoplink.models import IN_STOCK, OUT_OF_STOCK, UNKNOWN
from shoplink.platforms import JD, PDD, TAOBAO, TMALL

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class TestJdExtractor:
    """京东页面: 以结构化选择器为主."""

    @pytest.fixture(scope="class")
    def fields(self):
        return extractors.extract(_load_fixture("jd_product.html"), JD)

    def test_title(self, fields):
        assert fields.title == "华为 HUAWEI Mate 60 Pro 12GB+512GB 雅川青"

    def test_prices(self, fields):
        assert fields.price == "6999.00"
        assert fields.original_price == "7299.00"

    def test_brand_and_model_from_specifications(self, fields):
        assert fields.brand == "华为（HUAWEI）"
        assert fields.model == "ALN-AL00"

    def test_specifications(self, fields):
        """键值列表与表格都被扫描, 已有的键不被覆盖."""
        specs = fields.specifications
        assert specs["品牌"] == "华为（HUAWEI）"
        assert specs["商品名称"] == "华为Mate 60 Pro"
        assert specs["机身颜色"] == "雅川青"
        assert specs["屏幕尺寸"] == "6.82英寸"

    def test_images_deduplicated(self, fields):
        assert fields.images == [
            "https://img14.360buyimg.com/n1/jfs/t1/mate60.jpg",
            "https://img14.360buyimg.com/n1/jfs/t1/mate60-back.jpg",
        ]

    def test_shop_and_shipping(self, fields):
        assert fields.shop.name == "华为京东自营官方旗舰店"
        assert fields.shop.location is None
        assert "免运费" in fields.shipping

    def test_counts(self, fields):
        assert fields.review_count == "20万+"
        assert fields.sales is None
        assert fields.rating is None

    def test_availability(self, fields):
        assert fields.availability == IN_STOCK

    def test_selected_options(self, fields):
        assert fields.params == {"选择颜色": "雅川青", "选择版本": "12GB+256GB"}

    def test_description(self, fields):
        assert fields.description.startswith("超可靠昆仑玻璃")


class TestTmallExtractor:
    """天猫页面."""

    @pytest.fixture(scope="class")
    def fields(self):
        return extractors.extract(_load_fixture("tmall_product.html"), TMALL)

    def test_title(self, fields):
        assert fields.title == "Apple/苹果 iPhone 15 128GB 黑色"

    def test_promo_price_first(self, fields):
        """促销价优先, 原价单独保存."""
        assert fields.price == "4799.00"
        assert fields.original_price == "5999.00"

    def test_brand_and_model_from_labels(self, fields):
        assert fields.brand == "Apple/苹果"
        assert fields.model == "iPhone 15"

    def test_specifications(self, fields):
        specs = fields.specifications
        assert specs["品牌"] == "Apple/苹果"
        assert specs["机身颜色"] == "黑色"
        assert specs["CPU型号"] == "A16"
        assert "基本信息" not in specs

    def test_counts(self, fields):
        assert fields.sales == "1.2万"
        assert fields.review_count == "35678"

    def test_shop(self, fields):
        assert fields.shop.name == "Apple Store 官方旗舰店"
        assert fields.shop.location == "广东深圳"
        assert fields.shipping == "快递: 免运费"

    def test_stock_count(self, fields):
        assert fields.availability == IN_STOCK

    def test_images(self, fields):
        assert fields.images[0] == "https://img.alicdn.com/imgextra/i1/iphone15_430x430q90.jpg"
        assert len(fields.images) == 2

    def test_selected_options(self, fields):
        assert fields.params == {"机身颜色": "黑色"}


class TestTaobaoExtractor:
    """淘宝页面: 选择器落空时使用内嵌 JSON 与标签正则."""

    @pytest.fixture(scope="class")
    def fields(self):
        return extractors.extract(_load_fixture("taobao_product.html"), TAOBAO)

    def test_title_from_document_title(self, fields):
        assert fields.title == "复古帆布包 大容量 通勤单肩包"

    def test_prices_from_embedded_json(self, fields):
        assert fields.price == "99.00"
        assert fields.original_price == "128.00"

    def test_shop_from_embedded_json(self, fields):
        assert fields.shop.name == "帆布小铺"
        assert fields.shop.location == "浙江杭州"

    def test_sales_from_label(self, fields):
        assert fields.sales == "2.3万"

    def test_brand_from_label(self, fields):
        assert fields.brand == "无品牌"

    def test_out_of_stock_quantity(self, fields):
        """库存为 0 时优先于购买按钮判为缺货."""
        assert fields.availability == OUT_OF_STOCK

    def test_images_from_pattern(self, fields):
        assert fields.images == ["https://img.alicdn.com/bao/uploaded/bag1.jpg"]

    def test_specifications(self, fields):
        assert fields.specifications["材质"] == "帆布"
        assert fields.specifications["颜色分类"] == "米白色"


class TestPddExtractor:
    """拼多多页面: window.rawData."""

    @pytest.fixture(scope="class")
    def fields(self):
        return extractors.extract(_load_fixture("pdd_product.html"), PDD)

    def test_title(self, fields):
        assert fields.title == "【百亿补贴】清风抽纸 24包 家用实惠装"

    def test_price_in_cents(self, fields):
        assert fields.price == "19.90"
        assert fields.original_price == "29.90"

    def test_sales_tip(self, fields):
        assert fields.sales == "已拼10万+件"

    def test_gallery(self, fields):
        assert fields.images == [
            "https://img.pddpic.com/gallery/1.jpeg",
            "https://img.pddpic.com/gallery/2.jpeg",
        ]

    def test_mall(self, fields):
        assert fields.shop.name == "清风官方旗舰店"
        assert fields.availability == IN_STOCK


class TestGenericStrategies:
    """平台无关的抽取策略."""

    def test_empty_page(self):
        """字段缺失不是错误, 全部为空."""
        fields = extractors.extract("<html><body></body></html>", JD)
        assert fields.title is None
        assert fields.price is None
        assert fields.specifications == {}
        assert fields.images == []
        assert fields.availability == UNKNOWN

    def test_json_ld(self):
        html = """
        <html><head><script type="application/ld+json">
        {"@context": "https://schema.org", "@graph": [
          {"@type": "BreadcrumbList"},
          {"@type": "Product", "name": "保温杯 500ml", "brand": {"@type": "Brand", "name": "膳魔师"},
           "image": ["https://img.example.com/cup.jpg"],
           "offers": {"@type": "Offer", "price": "129.00"},
           "aggregateRating": {"ratingValue": "4.9", "reviewCount": "3200"}}
        ]}
        </script></head><body></body></html>
        """
        fields = RuleExtractor(PlatformRules(key="TEST")).extract(html)

        assert fields.title == "保温杯 500ml"
        assert fields.price == "129.00"
        assert fields.brand == "膳魔师"
        assert fields.rating == "4.9"
        assert fields.review_count == "3200"
        assert fields.images == ["https://img.example.com/cup.jpg"]

    def test_price_scan_fallback(self):
        """没有结构化价格时扫描可见文本, 脚本中的数字不计入."""
        html = (
            "<html><body><script>var skuId = 55;</script>"
            "<div>订单号 20231118123456</div><div>到手价 仅需 <b>88</b> 元</div></body></html>"
        )
        fields = RuleExtractor(PlatformRules(key="TEST")).extract(html)
        assert fields.price == "88"

    def test_reject_words(self):
        rule = FieldRule(selectors=("h1",), reject=("登录",))
        extractor = RuleExtractor(PlatformRules(key="TEST", title=rule))
        assert extractor.extract("<h1>请登录</h1>").title is None

    def test_unknown_platform(self):
        with pytest.raises(ValueError):
            extractors.extract("<html></html>", None)


class TestHelpers:
    """deep_get / label_pattern / scan_price 的测试."""

    def test_deep_get(self):
        data = {"a": {"b": [{"c": 1}]}}
        assert deep_get(data, "a", "b", 0, "c") == 1
        assert deep_get(data, "a", "x", "c") is None
        assert deep_get(data, "a", "b", 5) is None

    def test_label_pattern(self):
        m = label_pattern("品牌").search("<li>品牌：小米，型号：14</li>")
        assert m.group(1) == "小米"

    def test_scan_price(self):
        assert scan_price("库存 5 件 原价 1,299.00 元") == "1299.00"
        assert scan_price("没有价格") is None
        assert scan_price("编号 1234567") is None
