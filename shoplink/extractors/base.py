"""按规则表驱动的多策略抽取.

每个字段按顺序尝试下列策略, 取第一个非空且合理的值:
  a. 平台当前页面结构的 CSS 选择器
  b. 页面内嵌的 JSON (平台状态对象、JSON-LD、"key":"value" 片段)
  c. 原始 HTML 上的正则 (含 "品牌：" 这类本地化标签)
  d. 仅价格: 在可见文本中按合理区间扫描数字
单个字段取不到时返回 None, 不视为错误.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Callable, Protocol

from bs4 import BeautifulSoup, Comment

from shoplink.config import PRICE_MAX, PRICE_SCAN_MAX, PRICE_SCAN_MIN
from shoplink.extractors.text import (
    absolute_url,
    clean_text,
    parse_count,
    split_pair,
    to_number,
)
from shoplink.models import (
    IN_STOCK,
    OUT_OF_STOCK,
    UNKNOWN,
    RawProductFields,
    ShopInfo,
)

logger = logging.getLogger(__name__)

_LD_JSON_RE = re.compile(r"application/ld\+json", re.IGNORECASE)
_SCAN_TOKEN_RE = re.compile(r"(?<![\d.,])(\d{1,3}(?:,\d{3})+|\d{1,6})(\.\d{1,2})?(?![\d.,])")

# JSON-LD Product 的通用字段路径
LD_PATHS: dict[str, tuple[tuple, ...]] = {
    "title": (("name",),),
    "price": (("offers", "price"), ("offers", 0, "price"), ("offers", "lowPrice")),
    "brand": (("brand", "name"), ("brand",)),
    "model": (("model",), ("mpn",)),
    "description": (("description",),),
    "rating": (("aggregateRating", "ratingValue"),),
    "review_count": (("aggregateRating", "reviewCount"),),
}


# 各平台共用的 "标签：值" 规格兜底
COMMON_SPEC_LABELS = ("品牌", "型号", "颜色", "尺寸", "重量", "材质", "功率", "容量")

# 各平台共用的价格正则
COMMON_PRICE_PATTERNS = (
    re.compile(r"[¥￥]\s*([0-9,]+\.?[0-9]*)"),
    re.compile(r"(?:价格|现价|售价)[：:]?\s*[¥￥]?\s*([0-9,]+\.?[0-9]*)"),
    re.compile(r'data-price="([^"]+)"', re.IGNORECASE),
)


@dataclass(frozen=True)
class FieldRule:
    """单个字段的抽取规则."""

    selectors: tuple[str, ...] = ()  # "css" 或 "css@属性名"
    state_paths: tuple[tuple, ...] = ()
    json_keys: tuple[str, ...] = ()
    patterns: tuple[re.Pattern, ...] = ()
    labels: tuple[str, ...] = ()
    reject: tuple[str, ...] = ()  # 值中含有这些词则丢弃
    min_length: int = 1
    max_length: int = 200
    state_divisor: int = 1  # 状态对象中的整数值按此换算 (如分 -> 元)


@dataclass(frozen=True)
class PlatformRules:
    """一个平台的全部抽取规则."""

    key: str
    title: FieldRule = FieldRule()
    price: FieldRule = FieldRule()
    original_price: FieldRule = FieldRule()
    brand: FieldRule = FieldRule()
    model: FieldRule = FieldRule()
    description: FieldRule = FieldRule()
    shop_name: FieldRule = FieldRule()
    location: FieldRule = FieldRule()
    sales: FieldRule = FieldRule()
    rating: FieldRule = FieldRule()
    review_count: FieldRule = FieldRule()
    shipping: FieldRule = FieldRule()
    stock: FieldRule = FieldRule()  # 库存数量
    state_patterns: tuple[re.Pattern, ...] = ()  # 捕获内嵌 JSON 对象的正则
    image_selectors: tuple[str, ...] = ()
    image_state_paths: tuple[tuple, ...] = ()
    image_patterns: tuple[re.Pattern, ...] = ()
    image_host: str = ""
    max_images: int = 20
    spec_pairs: tuple[tuple[str, str, str], ...] = ()  # (行, 键, 值) 选择器
    spec_lists: tuple[str, ...] = ()  # "键：值" 文本的列表项
    spec_tables: tuple[str, ...] = ()  # 两列表格的行
    spec_labels: tuple[str, ...] = ()  # 兜底: 原始 HTML 中的 "标签：值"
    spec_exclude: tuple[str, ...] = ()
    stock_selectors: tuple[str, ...] = ()  # 库存提示文本
    buy_selectors: tuple[str, ...] = ()  # 购买按钮, 存在即有货
    in_stock_words: tuple[str, ...] = ("现货", "有货", "立即购买")
    out_of_stock_words: tuple[str, ...] = ("缺货", "无货", "无库存", "已售罄", "售罄")
    # (组, 标签, 值候选) 选择器, 值候选按顺序尝试, 如 (已选中, 第一项)
    option_groups: tuple[tuple[str, str, tuple[str, ...]], ...] = ()


class Extractor(Protocol):
    """平台抽取器接口."""

    key: str

    def extract(self, html: str) -> RawProductFields: ...


def deep_get(d: Any, *keys):
    """从嵌套的 dict / list 中安全取值."""
    for key in keys:
        if isinstance(key, int):
            if not isinstance(d, list) or not -len(d) <= key < len(d):
                return None
            d = d[key]
        else:
            if not isinstance(d, dict):
                return None
            d = d.get(key)
    return d


def label_pattern(label: str, max_length: int = 50) -> re.Pattern:
    """"标签：值" 形式的正则, 值不跨标签、换行和中文分隔符."""
    return re.compile(
        re.escape(label) + r"\s*[：:](?:\s|&nbsp;)*([^<>\n\r，,；;&]{1,%d})" % max_length,
        re.IGNORECASE,
    )


class Page:
    """一次抽取用到的页面视图, 解析结果按需缓存."""

    def __init__(self, html: str, state_patterns: tuple[re.Pattern, ...] = ()):
        self.html = html or ""
        self.soup = BeautifulSoup(self.html, "html.parser")
        self._state_patterns = state_patterns

    @cached_property
    def states(self) -> list[dict]:
        """平台内嵌的状态对象 (如 window.rawData)."""
        states = []
        for pattern in self._state_patterns:
            for m in pattern.finditer(self.html):
                try:
                    data = json.loads(m.group(1))
                except json.JSONDecodeError as e:
                    logger.debug("内嵌 JSON 解析失败: %s", e)
                    continue
                if isinstance(data, dict):
                    states.append(data)
        return states

    @cached_property
    def ld_products(self) -> list[dict]:
        """JSON-LD 中 @type 为 Product 的对象."""
        products = []
        for script in self.soup.find_all("script", type=_LD_JSON_RE):
            try:
                data = json.loads(script.string or "")
            except json.JSONDecodeError:
                continue
            items = data if isinstance(data, list) else [data]
            for item in items:
                if not isinstance(item, dict):
                    continue
                graph = item.get("@graph")
                candidates = graph if isinstance(graph, list) else [item]
                for c in candidates:
                    if isinstance(c, dict) and c.get("@type") == "Product":
                        products.append(c)
        return products

    @cached_property
    def text(self) -> str:
        """可见文本 (不含脚本、样式和注释)."""
        parts = []
        for s in self.soup.find_all(string=True):
            if isinstance(s, Comment):
                continue
            if s.parent is not None and s.parent.name in ("script", "style", "noscript", "template"):
                continue
            parts.append(s)
        return clean_text(" ".join(parts))


def select_values(page: Page, selector: str) -> list[str]:
    """选择器对应的所有文本 (或属性值)."""
    css, _, attr = selector.partition("@")
    values = []
    for el in page.soup.select(css):
        raw = el.get(attr) if attr else el.get_text(" ")
        if isinstance(raw, list):
            raw = " ".join(raw)
        value = clean_text(raw)
        if value:
            values.append(value)
    return values


def json_key_values(html: str, key: str) -> list[str]:
    """原始 HTML 中 "key":"value" / "key":123 片段的值."""
    pattern = re.compile(
        r'"%s"\s*:\s*(?:"((?:[^"\\]|\\.)*)"|(-?\d+(?:\.\d+)?))' % re.escape(key)
    )
    values = []
    for m in pattern.finditer(html):
        if m.group(1) is not None:
            try:
                values.append(json.loads('"%s"' % m.group(1)))
            except json.JSONDecodeError:
                values.append(m.group(1))
        else:
            values.append(m.group(2))
    return values


def _state_value(value, divisor: int) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    if isinstance(value, int) and divisor > 1:
        return f"{value / divisor:.2f}"
    return str(value)


def _ld_values(page: Page, name: str) -> list[str]:
    values = []
    for product in page.ld_products:
        for path in LD_PATHS.get(name, ()):
            value = _state_value(deep_get(product, *path), 1)
            if value:
                values.append(value)
    return values


def scan_price(text: str, low: float = PRICE_SCAN_MIN, high: float = PRICE_SCAN_MAX) -> str | None:
    """在文本中取第一个落在合理价格区间内的数字."""
    for m in _SCAN_TOKEN_RE.finditer(text):
        token = m.group(1).replace(",", "") + (m.group(2) or "")
        value = float(token)
        if low <= value <= high:
            return token
    return None


class RuleExtractor:
    """按 PlatformRules 抽取商品字段."""

    def __init__(self, rules: PlatformRules):
        self.rules = rules
        self.key = rules.key

    def extract(self, html: str) -> RawProductFields:
        page = Page(html, self.rules.state_patterns)
        r = self.rules

        fields = RawProductFields(
            title=self.extract_field(page, "title", r.title),
            price=self.extract_price(page),
            original_price=self.extract_field(page, "original_price", r.original_price, _is_price),
            brand=self.extract_field(page, "brand", r.brand),
            model=self.extract_field(page, "model", r.model),
            specifications=self.extract_specifications(page),
            description=self.extract_field(page, "description", r.description),
            images=self.extract_images(page),
            shop=ShopInfo(
                name=self.extract_field(page, "shop_name", r.shop_name),
                location=self.extract_field(page, "location", r.location),
            ),
            sales=self.extract_field(page, "sales", r.sales, _has_count),
            rating=self.extract_field(page, "rating", r.rating, _is_rating),
            review_count=self.extract_field(page, "review_count", r.review_count, _has_count),
            availability=self.extract_availability(page),
            params=self.extract_options(page),
            shipping=self.extract_field(page, "shipping", r.shipping),
        )
        if fields.brand is None:
            fields.brand = fields.specifications.get("品牌")
        if fields.model is None:
            fields.model = fields.specifications.get("型号") or fields.specifications.get("商品型号")

        logger.debug(
            "[%s] 抽取完成: title=%s, price=%s, specs=%d, images=%d",
            self.key, fields.title, fields.price, len(fields.specifications), len(fields.images),
        )
        return fields

    def extract_field(
        self,
        page: Page,
        name: str,
        rule: FieldRule,
        accept: Callable[[str], bool] | None = None,
    ) -> str | None:
        """按策略顺序取字段值."""
        for source, value in self._candidates(page, name, rule):
            value = clean_text(value)
            if self._acceptable(value, rule, accept):
                logger.debug("[%s] %s 来自 %s", self.key, name, source)
                return value
        return None

    def _candidates(self, page: Page, name: str, rule: FieldRule):
        # a. 结构化选择器
        for selector in rule.selectors:
            for value in select_values(page, selector):
                yield "selector", value
        # b. 内嵌 JSON
        for state in page.states:
            for path in rule.state_paths:
                value = _state_value(deep_get(state, *path), rule.state_divisor)
                if value:
                    yield "state", value
        for value in _ld_values(page, name):
            yield "ld+json", value
        for key in rule.json_keys:
            for value in json_key_values(page.html, key):
                yield "json", value
        # c. 原始 HTML 正则
        for pattern in rule.patterns:
            for m in pattern.finditer(page.html):
                if m.group(1):
                    yield "pattern", m.group(1)
        for label in rule.labels:
            for m in label_pattern(label, rule.max_length).finditer(page.html):
                yield "label", m.group(1)

    @staticmethod
    def _acceptable(value: str, rule: FieldRule, accept) -> bool:
        if not value or len(value) < rule.min_length or len(value) > rule.max_length:
            return False
        if any(word in value for word in rule.reject):
            return False
        return accept is None or accept(value)

    def extract_price(self, page: Page) -> str | None:
        price = self.extract_field(page, "price", self.rules.price, _is_price)
        if price is not None:
            return price
        # d. 可见文本数字扫描
        price = scan_price(page.text)
        if price is not None:
            logger.debug("[%s] price 来自宽松扫描: %s", self.key, price)
        return price

    def extract_specifications(self, page: Page) -> dict[str, str]:
        """键值列表与两列表格都扫描, 已有的键不覆盖."""
        r = self.rules
        specs: dict[str, str] = {}

        def put(key: str, value: str) -> None:
            key = clean_text(key).rstrip("：:").strip()
            value = clean_text(value)
            if key and value and key not in r.spec_exclude and len(key) <= 30:
                specs.setdefault(key, value)

        for row_sel, key_sel, value_sel in r.spec_pairs:
            for row in page.soup.select(row_sel):
                key_el = row.select_one(key_sel)
                value_el = row.select_one(value_sel)
                if key_el is not None and value_el is not None:
                    put(key_el.get_text(" "), value_el.get_text(" "))

        for selector in r.spec_lists:
            for item in page.soup.select(selector):
                pair = split_pair(item.get_text(" "))
                if pair:
                    put(*pair)

        for selector in r.spec_tables:
            for row in page.soup.select(selector):
                cells = row.find_all(["th", "td", "dt", "dd"], recursive=False)
                if len(cells) >= 2:
                    put(cells[0].get_text(" "), cells[1].get_text(" "))

        for label in r.spec_labels:
            m = label_pattern(label).search(page.html)
            if m:
                put(label, m.group(1))

        return specs

    def extract_images(self, page: Page) -> list[str]:
        """主图在前, 去重保序."""
        r = self.rules
        found: list[str] = []

        for selector in r.image_selectors:
            for img in page.soup.select(selector):
                for attr in ("src", "data-src", "data-lazy-img", "data-lazy-src", "data-original"):
                    url = absolute_url(img.get(attr) or "", r.image_host)
                    if url:
                        found.append(url)
                        break

        for state in page.states:
            for path in r.image_state_paths:
                value = deep_get(state, *path)
                items = value if isinstance(value, list) else [value]
                for item in items:
                    if isinstance(item, dict):
                        item = item.get("url") or item.get("imgUrl")
                    if isinstance(item, str):
                        url = absolute_url(item, r.image_host)
                        if url:
                            found.append(url)

        for product in page.ld_products:
            value = product.get("image")
            for item in value if isinstance(value, list) else [value]:
                if isinstance(item, str):
                    url = absolute_url(item, r.image_host)
                    if url:
                        found.append(url)

        for pattern in r.image_patterns:
            for m in pattern.finditer(page.html):
                url = absolute_url(m.group(1).replace("\\/", "/"), r.image_host)
                if url:
                    found.append(url)

        return list(dict.fromkeys(found))[: r.max_images]

    def extract_availability(self, page: Page) -> str:
        r = self.rules
        stock_text = " ".join(v for sel in r.stock_selectors for v in select_values(page, sel))
        if any(word in stock_text for word in r.out_of_stock_words):
            return OUT_OF_STOCK

        stock = self.extract_field(page, "stock", r.stock, _has_count)
        if stock is not None:
            return IN_STOCK if parse_count(stock) else OUT_OF_STOCK

        for selector in r.buy_selectors:
            if page.soup.select_one(selector) is not None:
                return IN_STOCK
        if any(word in stock_text for word in r.in_stock_words):
            return IN_STOCK
        return UNKNOWN

    def extract_options(self, page: Page) -> dict[str, str]:
        """已选 (或第一个) SKU 选项."""
        params: dict[str, str] = {}
        for group_sel, label_sel, value_sels in self.rules.option_groups:
            for group in page.soup.select(group_sel):
                label_el = group.select_one(label_sel)
                value_el = next(
                    (el for el in (group.select_one(s) for s in value_sels) if el is not None),
                    None,
                )
                if label_el is None or value_el is None:
                    continue
                label = clean_text(label_el.get_text(" ")).rstrip("：:")
                value = clean_text(value_el.get("title") or value_el.get_text(" "))
                if label and value:
                    params.setdefault(label, value)
        return params


def _is_price(value: str) -> bool:
    number = to_number(value)
    return number is not None and 0 < number < PRICE_MAX


def _is_rating(value: str) -> bool:
    number = to_number(value)
    return number is not None and 0 <= number <= 5


def _has_count(value: str) -> bool:
    return parse_count(value) is not None
