"""天猫商品页面的抽取规则."""

import re

from shoplink.extractors.base import (
    COMMON_PRICE_PATTERNS,
    COMMON_SPEC_LABELS,
    FieldRule,
    PlatformRules,
    RuleExtractor,
)

RULES = PlatformRules(
    key="TMALL",
    title=FieldRule(
        selectors=(
            ".tb-detail-hd h1",
            "h1[data-spm]",
            ".item-title",
            ".tb-main-title",
            "[class*='ItemHeader--mainTitle']",
        ),
        patterns=(re.compile(r"<title>\s*([^<]+?)\s*-\s*tmall\.com天猫", re.IGNORECASE),),
        min_length=2,
    ),
    price=FieldRule(
        selectors=(
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
        selectors=("#J_StrPriceModBox .tm-price", ".tm-price-original"),
        json_keys=("reservePrice",),
        max_length=20,
    ),
    brand=FieldRule(
        selectors=("#J_BrandAttr .J_EbrandLogo", ".brand-name", ".brand-logo@title"),
        json_keys=("brandName", "brand"),
        labels=("品牌",),
        max_length=50,
    ),
    model=FieldRule(
        selectors=(".model-info",),
        labels=("型号", "货号"),
        max_length=50,
    ),
    description=FieldRule(
        selectors=(".tb-detail-desc", ".tm-desc-detail", ".description"),
        max_length=2000,
    ),
    shop_name=FieldRule(
        selectors=(".slogo-shopname", ".tm-shop-name .slogo-shopname", "[class*='ShopHeader--title']"),
        json_keys=("shopName",),
        max_length=60,
    ),
    location=FieldRule(
        selectors=("#J_deliveryAdd", ".tb-deliveryAdd"),
        json_keys=("deliveryAddress",),
        labels=("发货地",),
        max_length=30,
    ),
    shipping=FieldRule(
        selectors=(".tm-postAge", "#J_PostageToggleCont"),
        labels=("运费",),
        max_length=100,
    ),
    sales=FieldRule(
        selectors=(".tm-ind-sellCount .tm-count", ".tm-count", ".tb-count", ".sales-amount"),
        json_keys=("sellCount",),
        labels=("月销量",),
        max_length=30,
    ),
    rating=FieldRule(
        selectors=(".tm-rate .score", ".rate-score", ".rating-score"),
        max_length=10,
    ),
    review_count=FieldRule(
        selectors=(".tm-ind-reviewCount .tm-count", ".rate-count", ".tm-rate .count", ".review-count"),
        labels=("累计评价",),
        max_length=30,
    ),
    stock=FieldRule(
        selectors=("#J_EmStock",),
        json_keys=("quantity",),
        max_length=20,
    ),
    image_selectors=("#J_ImgBooth", ".tb-booth .tb-pic img", "#J_UlThumb img", ".J_TSaleProp img"),
    image_patterns=(re.compile(r'"auctionImages"\s*:\s*\[\s*"([^"]+)"'),),
    spec_pairs=((".tb-property-cont .tm-clear", ".tb-property-type", ".tb-property-value"),),
    spec_lists=("#J_AttrUL li",),
    spec_tables=(".tm-tableAttr tbody tr",),
    spec_labels=COMMON_SPEC_LABELS,
    stock_selectors=(".tb-amount .tm-stock", ".stock-info"),
    buy_selectors=(".tm-fcs-panel .tm-btn-buy", "#J_LinkBuy", ".tm-action .tm-btn", ".purchase-btn"),
    option_groups=((".tb-sku .tm-sale-prop", ".tb-metatit", (".tb-selected", "li")),),
)

extractor = RuleExtractor(RULES)
