"""京东商品页面的抽取规则."""

import re

from shoplink.extractors.base import (
    COMMON_PRICE_PATTERNS,
    COMMON_SPEC_LABELS,
    FieldRule,
    PlatformRules,
    RuleExtractor,
)

RULES = PlatformRules(
    key="JD",
    title=FieldRule(
        selectors=(
            ".sku-name",
            "#name h1",
            ".product-intro .p-name a",
            ".itemInfo-wrap .sku-name",
        ),
        json_keys=("skuName", "wareName"),
        patterns=(re.compile(r"<title>\s*(?:【[^】<]*】)?([^<【]+?)\s*(?:【|-\s*京东|</title>)", re.IGNORECASE),),
        min_length=2,
    ),
    price=FieldRule(
        selectors=(
            ".price .p-price .price",
            "#jd-price",
            ".summary-price .p-price .price",
            ".summary-price .p-price",
            ".p-price .price",
            ".price-container .current-price",
        ),
        json_keys=("currentPrice", "jdPrice", "p"),
        patterns=(
            re.compile(r'<em[^>]*class="[^"]*J-p-[^"]*"[^>]*>([0-9,]+\.?[0-9]*)</em>', re.IGNORECASE),
        ) + COMMON_PRICE_PATTERNS,
        max_length=20,
    ),
    original_price=FieldRule(
        selectors=(".p-price-plus .price", "#page_origin_price", ".summary-price .del"),
        json_keys=("op", "m"),
        max_length=20,
    ),
    brand=FieldRule(
        selectors=(".p-parameter .brand a", ".p-parameter .brand", ".brand-name", ".crumb-wrap .brand"),
        json_keys=("brandName",),
        labels=("品牌",),
        max_length=50,
    ),
    model=FieldRule(
        selectors=(".model-info",),
        labels=("商品型号", "型号"),
        max_length=50,
    ),
    description=FieldRule(
        selectors=(".detail .detail-content", ".product-detail-desc", ".item-desc"),
        max_length=2000,
    ),
    shop_name=FieldRule(
        selectors=(".J-hove-wrap .name a", ".shopName .name a", ".popbox-inner .mt h3 a", ".seller-infor a"),
        json_keys=("shopName", "venderName"),
        max_length=60,
    ),
    location=FieldRule(
        selectors=("#stock-address .ui-area-text", ".ui-area-text"),
        max_length=60,
    ),
    shipping=FieldRule(
        selectors=("#summary-service", ".summary-service", "#summary-freight"),
        max_length=200,
    ),
    sales=FieldRule(
        selectors=(".sales-count", ".comment-item .comment-count"),
        max_length=30,
    ),
    rating=FieldRule(
        selectors=(".comment-item .comment-score .score", ".rate-score", ".product-score"),
        json_keys=("averageScore",),
        max_length=10,
    ),
    review_count=FieldRule(
        selectors=("#comment-count .count", ".comment-count .count", ".review-count .count", ".comment-tab .count"),
        json_keys=("commentCountStr", "CommentCountStr", "commentCount", "CommentCount"),
        max_length=30,
    ),
    image_selectors=(
        "#spec-img",
        ".preview .jqzoom img",
        ".product-intro .preview img",
        ".main-img img",
        "#spec-list img",
    ),
    spec_pairs=((".parameter2 li", ".parameter-key", ".parameter-value"),),
    spec_lists=(".parameter2 li", ".p-parameter-list li"),
    spec_tables=(".Ptable tbody tr", ".Ptable-item dl"),
    spec_labels=COMMON_SPEC_LABELS,
    stock_selectors=(".stock-info", "#store-prompt"),
    buy_selectors=("#InitCartUrl", ".btn-addtocart"),
    option_groups=((".choose-attrs .choose-attr", ".dt", (".item.selected", ".selected", ".item", ".choose-item")),),
)

extractor = RuleExtractor(RULES)
