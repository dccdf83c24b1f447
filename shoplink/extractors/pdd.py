"""拼多多商品页面的抽取规则.

移动端页面主要数据在 window.rawData 中, 价格单位为分.
"""

import re

from shoplink.extractors.base import (
    COMMON_PRICE_PATTERNS,
    COMMON_SPEC_LABELS,
    FieldRule,
    PlatformRules,
    RuleExtractor,
)

_GOODS = ("store", "initDataObj", "goods")
_MALL = ("store", "initDataObj", "mall")

RULES = PlatformRules(
    key="PDD",
    state_patterns=(
        re.compile(r"window\.rawData\s*=\s*(\{.*?\})\s*;?\s*</script>", re.DOTALL),
    ),
    title=FieldRule(
        selectors=(".goods-title", ".product-title", "h1.title", ".item-title"),
        state_paths=(_GOODS + ("goodsName",),),
        json_keys=("goodsName",),
        min_length=2,
    ),
    price=FieldRule(
        selectors=(".price .current-price", ".goods-price .price", ".price-num"),
        state_paths=(_GOODS + ("minGroupPrice",), _GOODS + ("groupPrice",)),
        state_divisor=100,
        patterns=COMMON_PRICE_PATTERNS,
        max_length=20,
    ),
    original_price=FieldRule(
        selectors=(".market-price", ".original-price"),
        state_paths=(_GOODS + ("minNormalPrice",), _GOODS + ("marketPrice",)),
        state_divisor=100,
        max_length=20,
    ),
    brand=FieldRule(
        selectors=(".brand-name",),
        labels=("品牌",),
        max_length=50,
    ),
    model=FieldRule(
        labels=("型号",),
        max_length=50,
    ),
    description=FieldRule(
        selectors=(".goods-desc", ".product-desc", ".description"),
        state_paths=(_GOODS + ("goodsDesc",),),
        max_length=2000,
    ),
    shop_name=FieldRule(
        selectors=(".store-name", ".shop-name", ".mall-name"),
        state_paths=(_MALL + ("mallName",),),
        json_keys=("mallName",),
        max_length=60,
    ),
    location=FieldRule(
        labels=("发货地",),
        max_length=30,
    ),
    shipping=FieldRule(
        selectors=(".goods-service", ".service-tag"),
        labels=("运费",),
        max_length=100,
    ),
    sales=FieldRule(
        selectors=(".sales-count", ".sold-count", ".sales"),
        state_paths=(_GOODS + ("sideSalesTip",), _GOODS + ("soldQuantity",)),
        json_keys=("sideSalesTip",),
        max_length=30,
    ),
    rating=FieldRule(
        selectors=(".rating-score", ".star-score"),
        max_length=10,
    ),
    review_count=FieldRule(
        selectors=(".review-count", ".comment-count", ".reviews"),
        state_paths=(("store", "initDataObj", "review", "reviewNum"),),
        max_length=30,
    ),
    stock=FieldRule(
        state_paths=(_GOODS + ("quantity",),),
        max_length=20,
    ),
    image_selectors=(".goods-image img", ".product-image img", ".main-pic img"),
    image_state_paths=(_GOODS + ("topGallery",), _GOODS + ("hdThumbUrl",)),
    spec_lists=(".spec-list li",),
    spec_labels=COMMON_SPEC_LABELS,
    buy_selectors=(".buy-btn", ".add-cart", ".purchase"),
    option_groups=((".sku-item", ".sku-label", (".selected", ".sku-value")),),
)

extractor = RuleExtractor(RULES)
