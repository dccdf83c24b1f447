"""平台抽取器的查找表."""

from __future__ import annotations

from shoplink.extractors import jd, pdd, taobao, tmall
from shoplink.extractors.base import Extractor
from shoplink.models import PlatformDescriptor, RawProductFields

EXTRACTORS: dict[str, Extractor] = {
    e.key: e for e in (jd.extractor, taobao.extractor, tmall.extractor, pdd.extractor)
}


def get_extractor(platform: PlatformDescriptor) -> Extractor:
    """平台对应的抽取器.

    Raises:
        ValueError: platform 为 None 或没有对应的抽取器.
    """
    if platform is None:
        raise ValueError("platform is required")
    try:
        return EXTRACTORS[platform.key]
    except KeyError:
        raise ValueError(f"no extractor registered for platform {platform.key!r}") from None


def extract(html: str, platform: PlatformDescriptor) -> RawProductFields:
    """从商品页面 HTML 抽取原始字段. 缺失的字段为 None."""
    return get_extractor(platform).extract(html)
