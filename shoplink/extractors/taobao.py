"""淘宝商品页面的抽取规则."""

import re

from shoplink.extractors.base import (
    COMMON_PRICE_PATTERNS,
    COMMON_SPEC_LABELS,
    FieldRule,
    PlatformRules,
    RuleExtractor,
)

RULES = PlatformRules(
    key="TAOBAO",
    title=FieldRule(
        selectors=(
            ".tb-detail-hd h1",
            ".item-title-text",
            'h1[data-spm="1000983"]',
            ".tb-main-title",
            "[class*='ItemHeader--mainTitle']",
        ),
        patterns=(re.compile(r"<title>\s*([^<]+?)\s*-\s*淘宝网", re.IGNORECASE),),
        min_length=2,
    ),
    price=FieldRule(
        selectors=(
            "#J_PromoPriceNum",
            ".tm-promo-price .tm-price",
            ".tm-price-panel .tm-price",
            ".tb-rmb-num",
            ".price .notranslate",
            "[class*='Price--priceText']",
        ),
        json_keys=("promotionPrice", "price"),
        patterns=COMMON_PRICE_PATTERNS,
        max_length=20,
    ),
    original_price=FieldRule(
        selectors=("#J_StrPrice .tb-rmb-num", ".tb-original-price"),
        json_keys=("reservePrice",),
        max_length=20,
    ),
    brand=FieldRule(
        selectors=(".brand-name",),
        json_keys=("brandName",),
        labels=("品牌",),
        max_length=50,
    ),
    model=FieldRule(
        labels=("型号", "货号"),
        max_length=50,
    ),
    description=FieldRule(
        selectors=(".tb-detail-desc", ".description", ".item-desc"),
        max_length=2000,
    ),
    shop_name=FieldRule(
        selectors=(".tb-shop-name a", ".shop-name-link", ".tb-seller-name", "[class*='ShopHeader--title']"),
        json_keys=("shopName", "sellerNick"),
        max_length=60,
    ),
    location=FieldRule(
        selectors=("#J-From", ".tb-location"),
        json_keys=("deliveryAddress",),
        labels=("发货地", "所在地"),
        max_length=30,
    ),
    shipping=FieldRule(
        selectors=("#J_WlServiceTitle", ".tb-postAge"),
        labels=("运费",),
        max_length=100,
    ),
    sales=FieldRule(
        selectors=("#J_SellCounter", ".tb-count", ".sold-count", ".sales-amount"),
        json_keys=("sellCount", "soldQuantity"),
        labels=("月销量", "月销"),
        max_length=30,
    ),
    rating=FieldRule(
        selectors=(".rate-score", ".rating-score", ".tb-rate .score"),
        max_length=10,
    ),
    review_count=FieldRule(
        selectors=("#J_RateCounter", ".rate-count", ".review-count", ".comment-count"),
        json_keys=("rateCounts",),
        labels=("累计评价",),
        max_length=30,
    ),
    stock=FieldRule(
        selectors=("#J_SpanStock",),
        json_keys=("quantity",),
        max_length=20,
    ),
    image_selectors=("#J_ImgBooth", ".tb-booth .tb-pic img", "#J_UlThumb img", ".img-detail img"),
    image_patterns=(re.compile(r'"auctionImages"\s*:\s*\[\s*"([^"]+)"'),),
    spec_pairs=((".tb-property-cont .tm-clear", ".tb-property-type", ".tb-property-value"),),
    spec_lists=(".attributes-list li",),
    spec_labels=COMMON_SPEC_LABELS,
    stock_selectors=(".tb-amount .tb-stock", ".stock-info"),
    buy_selectors=(".tb-action .tb-btn-buy", "#J_LinkBuy", ".purchase-btn"),
    option_groups=((".J_Prop", "dt", (".tb-selected", "li")),),
)

extractor = RuleExtractor(RULES)
